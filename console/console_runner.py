"""Console runner entry point.

Wires the client core together against a live API: restores the stored session
or signs in, then runs a question loop on stdin.

Usage:
    python -m console.console_runner

Commands inside the loop:
    /new            start a new session
    /popular        list popular questions
    /rate <id> <helpful|not_helpful>
    /upload <path>  upload a document
    /quit
"""

import asyncio
import mimetypes
import os
import time

from dotenv import load_dotenv

from services.analytics.AnalyticsService import AnalyticsService
from services.analytics.PerformanceService import PerformanceService
from services.auth.AuthService import AuthService
from services.auth.TokenStore import TokenStore
from services.chat.ChatSessionController import ChatSessionController
from services.documents.DocumentService import DocumentService
from services.guards.GuardChain import GuardChain
from services.guards.Navigator import Navigator
from services.security.FileSecurityService import FileSecurityService
from shared.clients.ClientInterface import ClientInterface
from shared.clients.analytics.AnalyticsClient import AnalyticsClient
from shared.clients.auth.AuthClient import AuthClient
from shared.clients.documents.DocumentClient import DocumentClient
from shared.clients.qa.QAClient import QAClient
from shared.exceptions.errors import AppError, ValidationError
from shared.helper.HelperCache import HelperCache
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.chat import AnswerMessage
from shared.models.document import FileCandidate
from shared.storage.StorageManager import StorageManager

load_dotenv()
logging = setup_logging()


def print_answer(answer: AnswerMessage) -> None:
    print(f"\n{answer.text}")
    if answer.confidence is not None:
        print(f"  (confidence {answer.confidence:.0%}, answer id {answer.id})")
    for index, source in enumerate(answer.sources, start=1):
        page = f", page {source.page_number}" if source.page_number else ""
        print(f"  [{index}] {source.document_name}{page}: {source.excerpt}")
    print()


async def sign_in(auth_service: AuthService) -> bool:
    if await auth_service.do_restore():
        return True
    email = os.getenv("QA_EMAIL") or await asyncio.to_thread(input, "Email: ")
    password = os.getenv("QA_PASSWORD") or await asyncio.to_thread(input, "Password: ")
    try:
        await auth_service.do_login(email, password)
    except AppError as e:
        logging.error("Sign-in failed: %s", e.message)
        return False
    return True


async def upload(document_service: DocumentService, path: str) -> None:
    try:
        with open(path, "rb") as f:
            content = f.read()
    except OSError as e:
        logging.error("Cannot read %s: %s", path, e)
        return
    mime_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    candidate = FileCandidate(name=os.path.basename(path), size=len(content), mime_type=mime_type, content=content)
    try:
        document = await document_service.do_upload_and_wait(candidate)
    except ValidationError as e:
        for error in e.errors:
            print(f"  ✗ {error}")
        return
    except AppError as e:
        logging.error(e.message)
        return
    print(f"Uploaded as document {document.id} ({document.status})")


async def question_loop(
    controller: ChatSessionController,
    document_service: DocumentService,
    performance: PerformanceService,
) -> None:
    while True:
        line = (await asyncio.to_thread(input, "? ")).strip()
        if not line:
            continue
        if line == "/quit":
            return
        if line == "/new":
            await controller.do_start_new_session()
            print("Started a new session.")
            continue
        if line == "/popular":
            for popular in controller.get_popular_questions():
                print(f"  {popular.question} ({popular.count}x)")
            continue
        if line.startswith("/rate "):
            parts = line.split()
            if len(parts) != 3 or parts[2] not in ("helpful", "not_helpful"):
                print("Usage: /rate <answer id> <helpful|not_helpful>")
                continue
            rated = await controller.do_rate_answer(parts[1], parts[2])
            print("Thanks for the feedback." if rated else "Rating failed.")
            continue
        if line.startswith("/upload "):
            await upload(document_service, line[len("/upload "):].strip())
            continue

        if not controller.validate_question(line):
            print(f"Questions need at least {controller.min_question_length} characters.")
            continue
        start = time.perf_counter()
        answer = await controller.do_ask(line)
        performance.track_api_response_time("qa_ask", (time.perf_counter() - start) * 1000)
        if answer is not None:
            print_answer(answer)


async def main() -> None:
    """Run the interactive console."""
    config = HelperConfig(logger=logging)
    storage = StorageManager(helper_config=config).get_storage()
    navigator = Navigator(logger=logging)
    token_store = TokenStore(helper_config=config, storage=storage)
    cache = HelperCache(default_ttl=config.get_number_val("CACHE_TTL_SECONDS", default=300))

    auth_client = AuthClient(helper_config=config)
    auth_service = AuthService(helper_config=config, auth_client=auth_client, token_store=token_store, navigator=navigator)
    qa_client = QAClient(helper_config=config, auth_session=auth_service, cache=cache)
    document_client = DocumentClient(helper_config=config, auth_session=auth_service, cache=cache)
    analytics_client = AnalyticsClient(helper_config=config, auth_session=auth_service)
    clients: list[ClientInterface] = [auth_client, qa_client, document_client, analytics_client]

    analytics = AnalyticsService(helper_config=config, analytics_client=analytics_client)
    performance = PerformanceService(helper_config=config, analytics_client=analytics_client)
    guard_chain = GuardChain(helper_config=config, token_store=token_store, navigator=navigator)
    controller = ChatSessionController(helper_config=config, qa_client=qa_client, analytics=analytics, token_store=token_store)
    document_service = DocumentService(
        helper_config=config,
        document_client=document_client,
        file_security=FileSecurityService(helper_config=config),
        analytics=analytics,
        token_store=token_store,
    )

    try:
        for client in clients:
            await client.boot()
        analytics.start()
        performance.start()
        logging.info("Booted %d clients.", len(clients), color="cyan")

        if not await sign_in(auth_service):
            return
        if guard_chain.navigate("/qa") != "/qa":
            logging.error("Access to the Q&A area was denied, sent to %s.", navigator.current_path)
            return
        user = token_store.get_current_user()
        analytics.track_page_view("/qa", user.id if user else None)
        performance.set_current_page("/qa")

        start = time.perf_counter()
        await controller.do_initialize()
        performance.track_component_load_time("qa_chat", start)
        print(f"Signed in as {user.name}. Ask a question, or /quit.")
        await question_loop(controller, document_service, performance)
    except (EOFError, KeyboardInterrupt):
        pass
    finally:
        await analytics.stop()
        await performance.stop()
        await auth_service.close()
        for client in clients:
            await client.close()


if __name__ == "__main__":
    asyncio.run(main())
