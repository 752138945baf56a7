from datetime import datetime, timezone

from shared.clients.AuthSessionInterface import AuthSessionInterface
from shared.clients.ClientInterface import ClientInterface
from shared.exceptions.errors import TransportError
from shared.helper.HelperCache import HelperCache
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.qa import Answer, ConversationHistory, DocumentExcerpt, PopularQuestion, QASession, Question, Rating


class QAClient(ClientInterface):
    def __init__(self, helper_config: HelperConfig, auth_session: AuthSessionInterface | None = None, cache: HelperCache | None = None):
        super().__init__(helper_config=helper_config, auth_session=auth_session)
        self._cache = cache or HelperCache(default_ttl=helper_config.get_number_val("CACHE_TTL_SECONDS", default=300))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "qa"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return super()._get_required_config() + [
            EnvConfig(env_key="CACHE_TTL_SECONDS", val_type="number", default=300, shared=True),
        ]

    ################ ENDPOINTS ##################
    def _get_endpoint_healthcheck(self) -> str:
        return "/qa/popular-questions"

    def _get_endpoint_ask(self) -> str:
        return "/qa/ask"

    def _get_endpoint_sessions(self) -> str:
        return "/qa/sessions"

    def _get_endpoint_session_details(self, session_id: str) -> str:
        return f"/qa/sessions/{session_id}"

    def _get_endpoint_history(self, session_id: str) -> str:
        return f"/qa/sessions/{session_id}/history"

    def _get_endpoint_popular_questions(self) -> str:
        return "/qa/popular-questions"

    def _get_endpoint_rate_answer(self, answer_id: str) -> str:
        return f"/qa/answers/{answer_id}/rate"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_ask_question(self, text: str, session_id: str) -> Answer:
        """
        Asks a question within a session.

        Args:
            text (str): The question text.
            session_id (str): The session the question belongs to.

        Returns:
            Answer: The answer with its ordered source excerpts.

        Raises:
            TransportError: If the request fails or the answer cannot be parsed.
        """
        body = await self.do_request_json(method="POST", endpoint=self._get_endpoint_ask(), json={"question": text, "sessionId": session_id})
        return self._parse_or_raise(self._parse_answer, body, "answer")

    async def do_fetch_history(self, session_id: str) -> ConversationHistory:
        """
        Fetches the questions and answers of a session, as stored by the server.
        """
        body = await self.do_request_json(method="GET", endpoint=self._get_endpoint_history(session_id))
        return self._parse_or_raise(self._parse_history, body, "history")

    async def do_fetch_sessions(self) -> list[QASession]:
        body = await self.do_request_json(method="GET", endpoint=self._get_endpoint_sessions())
        return self._parse_or_raise(lambda items: [self._parse_session(item) for item in items], body or [], "session list")

    async def do_create_session(self, title: str | None = None) -> QASession:
        body = await self.do_request_json(method="POST", endpoint=self._get_endpoint_sessions(), json={"title": title})
        return self._parse_or_raise(self._parse_session, body, "session")

    async def do_delete_session(self, session_id: str) -> None:
        await self.do_request(method="DELETE", endpoint=self._get_endpoint_session_details(session_id), raise_on_error=True)

    async def do_fetch_popular_questions(self) -> list[PopularQuestion]:
        """
        Fetches the most asked questions. Cached for CACHE_TTL_SECONDS.
        """
        async def load() -> list[PopularQuestion]:
            body = await self.do_request_json(method="GET", endpoint=self._get_endpoint_popular_questions())
            return self._parse_or_raise(
                lambda items: [PopularQuestion(question=item.get("question"), count=item.get("count", 0)) for item in items],
                body or [],
                "popular questions",
            )

        return await self._cache.get_or_load("qa:popular-questions", load)

    async def do_rate_answer(self, answer_id: str, rating: Rating) -> None:
        await self.do_request(method="POST", endpoint=self._get_endpoint_rate_answer(answer_id), json={"rating": rating}, raise_on_error=True)

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_or_raise(self, parser, body, what: str):
        try:
            return parser(body)
        except (ValueError, TypeError, AttributeError, KeyError) as e:
            self.logging.error("Could not parse %s response: %s", what, e)
            raise TransportError(f"Invalid {what} response from server") from e

    def _parse_excerpt(self, response: dict) -> DocumentExcerpt:
        return DocumentExcerpt(
            document_id=str(response.get("documentId")),
            document_name=response.get("documentName"),
            excerpt=response.get("excerpt"),
            relevance_score=response.get("relevanceScore"),
            page_number=response.get("pageNumber"),
        )

    def _parse_answer(self, response: dict) -> Answer:
        return Answer(
            id=str(response.get("id")),
            question_id=response.get("questionId"),
            text=response.get("text"),
            confidence=response.get("confidence"),
            sources=[self._parse_excerpt(item) for item in response.get("sources") or []],
            timestamp=response.get("timestamp") or datetime.now(timezone.utc),
            processing_time=response.get("processingTime"),
        )

    def _parse_question(self, response: dict) -> Question:
        return Question(
            id=str(response.get("id")),
            text=response.get("text"),
            timestamp=response.get("timestamp"),
            user_id=response.get("userId"),
            session_id=response.get("sessionId"),
        )

    def _parse_session(self, response: dict) -> QASession:
        return QASession(
            id=str(response.get("id")),
            title=response.get("title") or "New Conversation",
            created_at=response.get("createdAt"),
            last_activity=response.get("lastActivity") or response.get("createdAt"),
            question_count=response.get("questionCount") or 0,
        )

    def _parse_history(self, response: dict) -> ConversationHistory:
        return ConversationHistory(
            questions=[self._parse_question(item) for item in response.get("questions") or []],
            answers=[self._parse_answer(item) for item in response.get("answers") or []],
        )
