from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from conftest import make_config
from shared.clients.analytics.AnalyticsClient import AnalyticsClient
from shared.clients.documents.DocumentClient import DocumentClient
from shared.clients.qa.QAClient import QAClient
from shared.exceptions.errors import AuthError, TransportError
from shared.models.analytics import AnalyticsEvent, PerformanceMetric

ANSWER = {
    "id": "a-1",
    "questionId": "q-1",
    "text": "The contract ends in May.",
    "confidence": 0.87,
    "sources": [
        {"documentId": "d-1", "documentName": "contract.pdf", "excerpt": "...ends 31 May...", "relevanceScore": 0.93, "pageNumber": 4},
    ],
    "timestamp": "2024-05-01T10:00:00Z",
    "processingTime": 1.2,
}

DOCUMENT = {
    "id": "d-1",
    "name": "1714557600000_abc.pdf",
    "originalName": "contract.pdf",
    "size": 1024,
    "type": "application/pdf",
    "uploadedAt": "2024-05-01T10:00:00Z",
    "uploadedBy": "u-1",
    "status": "processing",
}


def make_auth_session(tokens: list[str] | None = None):
    """Auth session double whose header follows ``tokens`` on every refresh."""
    tokens = list(tokens or ["token-1", "token-2"])
    session = MagicMock()
    session.get_auth_header.side_effect = lambda: {"Authorization": f"Bearer {tokens[0]}"}

    async def refresh():
        if len(tokens) > 1:
            tokens.pop(0)

    session.do_refresh = AsyncMock(side_effect=refresh)
    return session


async def make_client(cls, api, auth_session=None, **env):
    client = cls(helper_config=make_config(**env), auth_session=auth_session)
    await client.boot(api.transport())
    return client


class TestRequestPipeline:
    @pytest.mark.asyncio
    async def test_bearer_header_attached(self, api):
        api.on("GET", "/qa/sessions", (200, []))
        client = await make_client(QAClient, api, make_auth_session())

        await client.do_fetch_sessions()

        assert api.requests[0].headers["Authorization"] == "Bearer token-1"

    @pytest.mark.asyncio
    async def test_unauthorized_refreshes_and_retries_once(self, api):
        api.on("GET", "/qa/sessions", (401, {"message": "expired"}), (200, []))
        session = make_auth_session()
        client = await make_client(QAClient, api, session)

        assert await client.do_fetch_sessions() == []

        session.do_refresh.assert_awaited_once()
        assert [r.headers["Authorization"] for r in api.requests] == ["Bearer token-1", "Bearer token-2"]

    @pytest.mark.asyncio
    async def test_second_unauthorized_is_not_retried(self, api):
        api.on("GET", "/qa/sessions", (401, {"message": "still expired"}))
        session = make_auth_session()
        client = await make_client(QAClient, api, session)

        with pytest.raises(TransportError) as exc:
            await client.do_fetch_sessions()

        assert exc.value.status_code == 401
        assert exc.value.message == "still expired"
        assert len(api.requests) == 2
        session.do_refresh.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_refresh_propagates(self, api):
        api.on("GET", "/qa/sessions", (401, {}))
        session = make_auth_session()
        session.do_refresh = AsyncMock(side_effect=AuthError("refresh failed"))
        client = await make_client(QAClient, api, session)

        with pytest.raises(AuthError):
            await client.do_fetch_sessions()
        assert len(api.requests) == 1

    @pytest.mark.asyncio
    async def test_fallback_error_message(self, api):
        api.on("DELETE", "/qa/sessions/s-1", (404, b""))
        client = await make_client(QAClient, api)

        with pytest.raises(TransportError) as exc:
            await client.do_delete_session("s-1")

        assert exc.value.message == "Request to http://localhost:3000/api/qa/sessions/s-1 failed with status 404"

    @pytest.mark.asyncio
    async def test_network_error_becomes_transport_error(self, api):
        def fail(request):
            raise httpx.ReadTimeout("timed out", request=request)

        api.on("GET", "/qa/sessions", fail)
        client = await make_client(QAClient, api)

        with pytest.raises(TransportError):
            await client.do_fetch_sessions()

    @pytest.mark.asyncio
    async def test_invalid_json(self, api):
        api.on("GET", "/qa/sessions", (200, b"<html>"))
        client = await make_client(QAClient, api)

        with pytest.raises(TransportError):
            await client.do_fetch_sessions()

    @pytest.mark.asyncio
    async def test_requires_boot(self):
        client = QAClient(helper_config=make_config())
        with pytest.raises(TransportError):
            await client.do_fetch_sessions()

    @pytest.mark.asyncio
    async def test_base_url_and_timeout_from_config(self, api):
        api.on("GET", "/qa/popular-questions", (200, []))
        client = await make_client(QAClient, api, API_URL="http://qa.internal/api/", QA_TIMEOUT=5)

        await client.do_healthcheck()

        assert client.timeout == 5
        assert str(api.requests[0].url) == "http://qa.internal/api/qa/popular-questions"

    def test_invalid_config_rejected(self):
        with pytest.raises(ValueError):
            QAClient(helper_config=make_config(QA_TIMEOUT="soon"))


class TestQAClient:
    @pytest.mark.asyncio
    async def test_ask_question(self, api):
        api.on("POST", "/qa/ask", (200, ANSWER))
        client = await make_client(QAClient, api)

        answer = await client.do_ask_question("When does the contract end?", "s-1")

        assert api.body(api.requests[0]) == {"question": "When does the contract end?", "sessionId": "s-1"}
        assert answer.confidence == 0.87
        assert answer.sources[0].document_name == "contract.pdf"
        assert answer.sources[0].page_number == 4

    @pytest.mark.asyncio
    async def test_unparseable_answer(self, api):
        api.on("POST", "/qa/ask", (200, {"id": "a-1", "confidence": 7}))
        client = await make_client(QAClient, api)

        with pytest.raises(TransportError):
            await client.do_ask_question("When?", "s-1")

    @pytest.mark.asyncio
    async def test_history(self, api):
        api.on("GET", "/qa/sessions/s-1/history", (200, {
            "questions": [{"id": "q-1", "text": "When?", "timestamp": "2024-05-01T09:59:00Z", "sessionId": "s-1"}],
            "answers": [ANSWER],
        }))
        client = await make_client(QAClient, api)

        history = await client.do_fetch_history("s-1")

        assert history.questions[0].session_id == "s-1"
        assert history.answers[0].id == "a-1"

    @pytest.mark.asyncio
    async def test_create_session_defaults_title(self, api):
        api.on("POST", "/qa/sessions", (201, {"id": "s-9", "createdAt": "2024-05-01T10:00:00Z"}))
        client = await make_client(QAClient, api)

        session = await client.do_create_session()

        assert session.title == "New Conversation"
        assert session.last_activity == session.created_at

    @pytest.mark.asyncio
    async def test_popular_questions_are_cached(self, api):
        api.on("GET", "/qa/popular-questions", (200, [{"question": "What is due?", "count": 12}]))
        client = await make_client(QAClient, api)

        first = await client.do_fetch_popular_questions()
        second = await client.do_fetch_popular_questions()

        assert first == second
        assert first[0].count == 12
        assert len(api.requests) == 1

    @pytest.mark.asyncio
    async def test_rate_answer(self, api):
        api.on("POST", "/qa/answers/a-1/rate", (204, b""))
        client = await make_client(QAClient, api)

        await client.do_rate_answer("a-1", "helpful")

        assert api.body(api.requests[0]) == {"rating": "helpful"}


class TestDocumentClient:
    @pytest.mark.asyncio
    async def test_list_with_search(self, api):
        api.on("GET", "/documents", (200, {"documents": [DOCUMENT], "total": 31}))
        client = await make_client(DocumentClient, api)

        page = await client.do_fetch_documents(page=2, limit=5, search="contract")

        assert dict(api.requests[0].url.params) == {"page": "2", "limit": "5", "search": "contract"}
        assert page.total == 31
        assert page.documents[0].original_name == "contract.pdf"
        assert page.documents[0].status == "processing"

    @pytest.mark.asyncio
    async def test_document_cache_invalidated_by_update(self, api):
        api.on("GET", "/documents/d-1", (200, DOCUMENT))
        api.on("PATCH", "/documents/d-1", (200, {**DOCUMENT, "status": "processed"}))
        client = await make_client(DocumentClient, api)

        await client.do_fetch_document("d-1")
        await client.do_fetch_document("d-1")
        assert len(api.calls("GET", "/documents/d-1")) == 1

        updated = await client.do_update_document("d-1", {"metadata": {"tag": "legal"}})
        await client.do_fetch_document("d-1")

        assert updated.status == "processed"
        assert len(api.calls("GET", "/documents/d-1")) == 2

    @pytest.mark.asyncio
    async def test_malformed_document_body(self, api):
        api.on("GET", "/documents/7", (200, {"id": 7}))
        api.on("PATCH", "/documents/7", (200, ["not", "a", "document"]))
        client = await make_client(DocumentClient, api)

        with pytest.raises(TransportError):
            await client.do_fetch_document("7")
        with pytest.raises(TransportError):
            await client.do_update_document("7", {"status": "processed"})

    @pytest.mark.asyncio
    async def test_delete_and_download(self, api):
        api.on("DELETE", "/documents/d-1", (204, b""))
        api.on("GET", "/documents/d-1/download", (200, b"%PDF-1.7"))
        client = await make_client(DocumentClient, api)

        await client.do_delete_document("d-1")
        assert await client.do_download_document("d-1") == b"%PDF-1.7"


class TestAnalyticsClient:
    @pytest.mark.asyncio
    async def test_events_payload(self, api):
        api.on("POST", "/analytics/events", (202, b""))
        client = await make_client(AnalyticsClient, api)

        await client.do_send_events([AnalyticsEvent(event="search", category="qa", action="query", label="When?", value=0, user_id="u-1", timestamp=1)])

        assert api.body(api.requests[0]) == {"events": [
            {"event": "search", "category": "qa", "action": "query", "label": "When?", "value": 0.0, "userId": "u-1", "timestamp": 1},
        ]}

    @pytest.mark.asyncio
    async def test_metrics_failure(self, api):
        api.on("POST", "/analytics/performance", (503, {"message": "busy"}))
        client = await make_client(AnalyticsClient, api)

        with pytest.raises(TransportError) as exc:
            await client.do_send_metrics([PerformanceMetric(name="api_response_qa_ask", value=12.5, timestamp=1)])
        assert exc.value.message == "busy"
