"""Upload workflow: validate, rename, upload with progress, track."""

from typing import Any, AsyncIterator

from services.analytics.AnalyticsService import AnalyticsService
from services.auth.TokenStore import TokenStore
from services.security.FileSecurityService import FileSecurityService
from shared.clients.documents.DocumentClient import DocumentClient
from shared.exceptions.errors import ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document, FileCandidate, UploadProgress


class DocumentService:
    def __init__(
        self,
        helper_config: HelperConfig,
        document_client: DocumentClient,
        file_security: FileSecurityService,
        analytics: AnalyticsService,
        token_store: TokenStore,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._client = document_client
        self._security = file_security
        self._analytics = analytics
        self._store = token_store

    async def do_upload(self, candidate: FileCandidate, metadata: dict[str, Any] | None = None) -> AsyncIterator[UploadProgress | Document]:
        """
        Validates and uploads a file under a generated secure name.

        The check runs before anything is sent: a rejected file raises on the first
        iteration and no request is made.

        Yields:
            UploadProgress: Progress events of the upload.
            Document: The stored document, last.

        Raises:
            ValidationError: With every violated rule.
            TransportError: If the upload fails.
        """
        result = self._security.validate_file(candidate)
        if not result.is_valid:
            raise ValidationError(result.errors)

        secure_name = self._security.generate_secure_file_name(candidate.name)
        async for item in self._client.do_upload_document(
            file_name=secure_name,
            content=candidate.content,
            mime_type=candidate.mime_type,
            original_name=candidate.name,
            metadata=metadata,
        ):
            if isinstance(item, Document):
                user = self._store.get_current_user()
                self._analytics.track_file_upload(candidate.name, candidate.size, user.id if user else None)
            yield item

    async def do_upload_and_wait(self, candidate: FileCandidate, metadata: dict[str, Any] | None = None) -> Document:
        """Runs :meth:`do_upload` to completion, logging progress, and returns the document."""
        document: Document | None = None
        async for item in self.do_upload(candidate, metadata):
            if isinstance(item, Document):
                document = item
            else:
                self.logging.debug("Upload of '%s': %s", candidate.name, item.message)
        return document
