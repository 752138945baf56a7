"""Chat session state machine.

Owns the transcript of the current Q&A session, the IDLE/AWAITING state and the
session scope that lets a session switch drop responses still in flight.
"""

from datetime import datetime, timezone

from services.analytics.AnalyticsService import AnalyticsService
from services.auth.TokenStore import TokenStore
from shared.clients.qa.QAClient import QAClient
from shared.exceptions.errors import AppError
from shared.helper.HelperConfig import HelperConfig
from shared.models.chat import AnswerMessage, ChatMessage, ChatState, QuestionMessage
from shared.models.qa import Answer, ConversationHistory, PopularQuestion, QASession, Rating

ERROR_ANSWER_TEXT = "Sorry, I encountered an error while processing your question. Please try again."


class _SessionScope:
    """Closed when the controller leaves the session it was created for."""

    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True


class ChatSessionController:
    def __init__(
        self,
        helper_config: HelperConfig,
        qa_client: QAClient,
        analytics: AnalyticsService,
        token_store: TokenStore,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._qa = qa_client
        self._analytics = analytics
        self._store = token_store
        self.min_question_length = int(helper_config.get_number_val("CHAT_MIN_QUESTION_LENGTH", default=3))
        self.popular_questions_limit = int(helper_config.get_number_val("CHAT_POPULAR_QUESTIONS_LIMIT", default=5))

        self._state = ChatState.IDLE
        self._transcript: list[ChatMessage] = []
        self._scope = _SessionScope()
        self._current_session: QASession | None = None
        self._sessions: list[QASession] = []
        self._popular_questions: list[PopularQuestion] = []

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_state(self) -> ChatState:
        return self._state

    def get_transcript(self) -> list[ChatMessage]:
        return list(self._transcript)

    def get_current_session(self) -> QASession | None:
        return self._current_session

    def get_sessions(self) -> list[QASession]:
        return list(self._sessions)

    def get_popular_questions(self) -> list[PopularQuestion]:
        return list(self._popular_questions)

    def _get_user_id(self) -> str | None:
        user = self._store.get_current_user()
        return user.id if user else None

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_question(self, text: str | None) -> bool:
        return text is not None and len(text.strip()) >= self.min_question_length

    ##########################################
    ############### QUESTIONS ################
    ##########################################

    async def do_ask(self, text: str) -> AnswerMessage | None:
        """
        Asks a question in the current session.

        The question and a loading placeholder are appended right away; the
        placeholder is replaced by the answer, or by a fixed error answer when the
        request fails. A session is created first if none is active.

        Returns:
            AnswerMessage | None: The entry that replaced the placeholder. None when
            the call was ignored (invalid text, a question already in flight) or its
            response arrived after the session was left.
        """
        if self._state == ChatState.AWAITING:
            self.logging.debug("Question ignored, another one is in flight.")
            return None
        if not self.validate_question(text):
            self.logging.debug("Question ignored, shorter than %d characters.", self.min_question_length)
            return None

        question = text.strip()
        scope = self._scope
        user_id = self._get_user_id()
        now = datetime.now(timezone.utc)
        placeholder = AnswerMessage(is_loading=True, timestamp=now)
        self._transcript.append(QuestionMessage(text=question, timestamp=now))
        self._transcript.append(placeholder)
        self._state = ChatState.AWAITING
        self._analytics.track_search_query(question, 0, user_id)

        try:
            session = self._current_session
            if session is None:
                session = await self._qa.do_create_session()
                if scope.closed:
                    return None
                self._adopt_session(session)
            answer = await self._qa.do_ask_question(question, session.id)
        except AppError as e:
            if scope.closed:
                self.logging.debug("Dropping failure of a question from a closed session: %s", e.message)
                return None
            self.logging.error("Question failed: %s", e.message)
            message = AnswerMessage(text=ERROR_ANSWER_TEXT, timestamp=datetime.now(timezone.utc))
            self._replace_placeholder(placeholder, message)
            self._state = ChatState.IDLE
            return message

        if scope.closed:
            self.logging.debug("Dropping answer %s from a closed session.", answer.id)
            return None
        message = self._to_answer_message(answer)
        self._replace_placeholder(placeholder, message)
        self._state = ChatState.IDLE
        self._analytics.track_search_query(question, len(answer.sources), user_id)
        return message

    async def do_ask_popular_question(self, question: str) -> AnswerMessage | None:
        return await self.do_ask(question)

    async def do_rate_answer(self, answer_id: str, rating: Rating) -> bool:
        """
        Rates an answer. The transcript entry only changes once the server accepted the rating.

        Returns:
            bool: True when the rating was stored.
        """
        try:
            await self._qa.do_rate_answer(answer_id, rating)
        except AppError as e:
            self.logging.error("Rating answer %s failed: %s", answer_id, e.message)
            return False

        for message in self._transcript:
            if isinstance(message, AnswerMessage) and message.id == answer_id:
                message.rating = rating
        self._analytics.track_user_action("rate_answer", "qa", rating, self._get_user_id())
        return True

    ##########################################
    ################ SESSIONS ################
    ##########################################

    async def do_switch_session(self, session: QASession) -> None:
        """
        Makes ``session`` current and replays its history.

        A question still in flight for the previous session is abandoned. When the
        history cannot be fetched the transcript stays empty.
        """
        self._open_scope()
        self._current_session = session
        scope = self._scope
        try:
            history = await self._qa.do_fetch_history(session.id)
        except AppError as e:
            self.logging.error("Loading history of session %s failed: %s", session.id, e.message)
            return
        if scope.closed:
            return
        self._transcript = self._build_transcript(history)
        self.logging.debug("Session %s loaded with %d messages", session.id, len(self._transcript))

    async def do_start_new_session(self) -> QASession | None:
        """
        Leaves the current session and creates a fresh one.

        Returns:
            QASession | None: The new session. None when creation failed, in which case
            the next question creates one.
        """
        self._open_scope()
        self._current_session = None
        scope = self._scope
        try:
            session = await self._qa.do_create_session()
        except AppError as e:
            self.logging.error("Creating a session failed: %s", e.message)
            return None
        if scope.closed:
            return None
        self._adopt_session(session)
        return session

    async def do_initialize(self) -> None:
        """Loads the session list and popular questions, then starts a new session. Never raises."""
        try:
            self._sessions = await self._qa.do_fetch_sessions()
        except AppError as e:
            self.logging.error("Loading sessions failed: %s", e.message)
        try:
            popular = await self._qa.do_fetch_popular_questions()
            self._popular_questions = popular[:self.popular_questions_limit]
        except AppError as e:
            self.logging.error("Loading popular questions failed: %s", e.message)
        await self.do_start_new_session()

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _open_scope(self) -> None:
        self._scope.close()
        self._scope = _SessionScope()
        self._state = ChatState.IDLE
        self._transcript = []

    def _adopt_session(self, session: QASession) -> None:
        self._current_session = session
        self._sessions.insert(0, session)

    def _replace_placeholder(self, placeholder: AnswerMessage, message: AnswerMessage) -> None:
        for index, entry in enumerate(self._transcript):
            if entry is placeholder:
                self._transcript[index] = message
                return
        self._transcript.append(message)

    def _to_answer_message(self, answer: Answer) -> AnswerMessage:
        return AnswerMessage(
            id=answer.id,
            text=answer.text,
            confidence=answer.confidence,
            sources=answer.sources,
            timestamp=answer.timestamp,
        )

    def _build_transcript(self, history: ConversationHistory) -> list[ChatMessage]:
        entries: list[ChatMessage] = [QuestionMessage(text=q.text, timestamp=q.timestamp) for q in history.questions]
        entries += [self._to_answer_message(a) for a in history.answers]
        # stable: a question keeps its place before an answer with the same timestamp
        entries.sort(key=lambda entry: entry.timestamp.timestamp())
        return entries
