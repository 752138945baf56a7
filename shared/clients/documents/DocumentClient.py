import asyncio
import json
from typing import Any, AsyncIterator

import httpx

from shared.clients.AuthSessionInterface import AuthSessionInterface
from shared.clients.ClientInterface import ClientInterface
from shared.exceptions.errors import TransportError
from shared.helper.HelperCache import HelperCache
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.document import Document, DocumentsListResponse, UploadProgress

UPLOAD_CHUNK_SIZE = 64 * 1024  # bytes per streamed upload chunk
_UPLOAD_DONE = object()


class DocumentClient(ClientInterface):
    def __init__(self, helper_config: HelperConfig, auth_session: AuthSessionInterface | None = None, cache: HelperCache | None = None):
        super().__init__(helper_config=helper_config, auth_session=auth_session)
        self._cache = cache or HelperCache(default_ttl=helper_config.get_number_val("CACHE_TTL_SECONDS", default=300))
        self.upload_chunk_size = int(self.get_config_val("UPLOAD_CHUNK_SIZE", default=UPLOAD_CHUNK_SIZE, val_type="number"))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "documents"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return super()._get_required_config() + [
            EnvConfig(env_key="CACHE_TTL_SECONDS", val_type="number", default=300, shared=True),
            EnvConfig(env_key="UPLOAD_CHUNK_SIZE", val_type="number", default=UPLOAD_CHUNK_SIZE),
        ]

    ################ ENDPOINTS ##################
    def _get_endpoint_healthcheck(self) -> str:
        return "/documents?page=1&limit=1"

    def _get_endpoint_upload(self) -> str:
        return "/documents/upload"

    def _get_endpoint_documents(self) -> str:
        return "/documents"

    def _get_endpoint_document_details(self, document_id: str) -> str:
        return f"/documents/{document_id}"

    def _get_endpoint_download(self, document_id: str) -> str:
        return f"/documents/{document_id}/download"

    def _get_cache_key(self, document_id: str) -> str:
        return f"documents:{document_id}"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    ############# UPLOAD ##############
    async def do_upload_document(
        self,
        file_name: str,
        content: bytes,
        mime_type: str,
        original_name: str,
        metadata: dict[str, Any] | None = None,
    ) -> AsyncIterator[UploadProgress | Document]:
        """
        Uploads a file as multipart form data while reporting progress.

        The multipart body is encoded up front and streamed in chunks; a progress
        event is yielded each time a chunk has been handed to the transport.

        Args:
            file_name (str): Name sent for the file part (usually a generated secure name).
            content (bytes): The file content.
            mime_type (str): The file's MIME type.
            original_name (str): The user's file name, sent as the "originalName" field.
            metadata (dict | None): Optional metadata, sent JSON-encoded as the "metadata" field.

        Yields:
            UploadProgress: Advisory events, percentage non-decreasing from 0 to 100.
            Document: Exactly one, last, once the server accepted the upload.

        Raises:
            TransportError: If the upload fails. The message is prefixed with "Upload failed: ".
        """
        form: dict[str, str] = {"originalName": original_name}
        if metadata:
            form["metadata"] = json.dumps(metadata)

        # let httpx encode the multipart body, then stream the encoded bytes ourselves
        encoded = httpx.Request("POST", self._build_url(self._get_endpoint_upload()), data=form, files={"file": (file_name, content, mime_type)})
        body = encoded.read()
        total = len(body)
        queue: asyncio.Queue = asyncio.Queue()

        async def body_stream():
            sent = 0
            for start in range(0, total, self.upload_chunk_size):
                chunk = body[start:start + self.upload_chunk_size]
                yield chunk
                sent += len(chunk)
                queue.put_nowait(self._make_progress(sent, total))

        async def send() -> httpx.Response:
            try:
                return await self.do_request(
                    method="POST",
                    content=body_stream(),
                    endpoint=self._get_endpoint_upload(),
                    additional_headers={
                        "Content-Type": encoded.headers["Content-Type"],
                        "Content-Length": str(total),
                    },
                    raise_on_error=True,
                    # a streamed body cannot be replayed
                    retry_on_unauthorized=False,
                )
            finally:
                queue.put_nowait(_UPLOAD_DONE)

        self.logging.info("Uploading '%s' (%d bytes) as '%s'", original_name, len(content), file_name)
        send_task = asyncio.create_task(send())
        try:
            yield UploadProgress(progress=0, status="uploading", message="Uploading... 0%")
            while True:
                item = await queue.get()
                if item is _UPLOAD_DONE:
                    break
                yield item
            try:
                resp = await send_task
                document = self._parse_document_or_raise(resp.json())
            except ValueError as e:
                raise TransportError(f"Upload failed: invalid response ({e})") from e
            except TransportError as e:
                raise TransportError(f"Upload failed: {e.message}", status_code=e.status_code) from e
            self.logging.info("Upload of '%s' complete, document id %s", original_name, document.id)
            yield document
        finally:
            if not send_task.done():
                send_task.cancel()

    def _make_progress(self, sent: int, total: int) -> UploadProgress:
        progress = round(100 * sent / (total or 1))
        return UploadProgress(progress=progress, status="uploading", message=f"Uploading... {progress}%")

    ############# LISTING ##############
    async def do_fetch_documents(self, page: int = 1, limit: int = 10, search: str | None = None) -> DocumentsListResponse:
        """
        Fetches one page of documents.

        Args:
            page (int): 1-based page number.
            limit (int): Page size.
            search (str | None): Optional search term.
        """
        params: dict[str, Any] = {"page": page, "limit": limit}
        if search:
            params["search"] = search
        body = await self.do_request_json(method="GET", endpoint=self._get_endpoint_documents(), params=params)
        try:
            return DocumentsListResponse(
                documents=[self._parse_document(item) for item in body.get("documents") or []],
                total=body.get("total", 0),
                page=page,
                limit=limit,
            )
        except (ValueError, TypeError, AttributeError) as e:
            raise TransportError(f"Invalid document list response: {e}") from e

    ############# SINGLE DOCUMENT ##############
    async def do_fetch_document(self, document_id: str) -> Document:
        """
        Fetches one document. Cached for CACHE_TTL_SECONDS, invalidated by update and delete.
        """
        async def load() -> Document:
            body = await self.do_request_json(method="GET", endpoint=self._get_endpoint_document_details(document_id))
            return self._parse_document_or_raise(body)

        return await self._cache.get_or_load(self._get_cache_key(document_id), load)

    async def do_update_document(self, document_id: str, updates: dict[str, Any]) -> Document:
        body = await self.do_request_json(method="PATCH", endpoint=self._get_endpoint_document_details(document_id), json=updates)
        self._cache.delete(self._get_cache_key(document_id))
        return self._parse_document_or_raise(body)

    async def do_delete_document(self, document_id: str) -> None:
        await self.do_request(method="DELETE", endpoint=self._get_endpoint_document_details(document_id), raise_on_error=True)
        self._cache.delete(self._get_cache_key(document_id))

    async def do_download_document(self, document_id: str) -> bytes:
        """
        Downloads the raw file bytes of a document.
        """
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_download(document_id), raise_on_error=True)
        return resp.content

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_document_or_raise(self, body) -> Document:
        try:
            return self._parse_document(body)
        except (ValueError, TypeError, AttributeError, KeyError) as e:
            self.logging.error("Could not parse document response: %s", e)
            raise TransportError("Invalid document response from server") from e

    def _parse_document(self, response: dict) -> Document:
        return Document(
            id=str(response.get("id")),
            name=response.get("name"),
            original_name=response.get("originalName") or response.get("name"),
            size=response.get("size", 0),
            type=response.get("type"),
            uploaded_at=response.get("uploadedAt"),
            uploaded_by=response.get("uploadedBy"),
            status=response.get("status") or "uploaded",
            metadata=response.get("metadata"),
        )
