"""Main entry point for TalkSync.

Supports running:
- FastAPI server (REST + WebSocket chat)
- A single chat exchange from the command line
- A single request to the auxiliary test service
"""

import argparse
import asyncio

from talksync.core.logger import logger


def run_api():
    """Run the FastAPI server."""
    logger.info("Starting FastAPI server...")
    import uvicorn
    from talksync.core.settings import settings

    uvicorn.run(
        "talksync.api.main:app",
        host=settings.api.API_HOST,
        port=settings.api.API_PORT,
        workers=settings.api.API_WORKERS,
        log_level="info",
    )


async def run_chat(text: str, is_audio: bool) -> int:
    """Send one message through the full pipeline and print the exchange."""
    from talksync.core.dependencies import get_container

    session = get_container().get_session_manager().create_session(metadata={"transport": "cli"})
    try:
        exchange = await session.pipeline.submit_text(text, is_audio=is_audio)
        if exchange is None:
            logger.warning("Nothing to send")
            return 1

        print(f"Detected language: {exchange.detected_language}")
        print(session.conversation.transcript())
        return 0
    finally:
        await get_container().get_session_manager().delete_session(session.session_id)


async def run_test_app(text: str) -> int:
    """Send typed input to the add/subtract/sendmessage test service."""
    from talksync.core.dependencies import get_container

    response = await get_container().get_arithmetic_client().send(text)
    print(f"Response: {response}")
    return 0


def main():
    """Main entry point with CLI argument parsing."""
    parser = argparse.ArgumentParser(
        description="TalkSync - translate, chat and speak replies"
    )
    parser.add_argument(
        "mode",
        choices=["api", "chat", "test-app"],
        default="api",
        nargs="?",
        help="Run mode: 'api' (FastAPI server, default), 'chat' (one exchange), or 'test-app'",
    )
    parser.add_argument(
        "text",
        nargs="*",
        help="Message text for 'chat' and 'test-app' modes",
    )
    parser.add_argument(
        "--audio",
        action="store_true",
        help="Treat the chat message as spoken input so the reply is spoken too",
    )

    args = parser.parse_args()
    text = " ".join(args.text)

    logger.info(f"Starting TalkSync in '{args.mode}' mode...")

    if args.mode == "api":
        run_api()
    elif args.mode == "chat":
        if not text.strip():
            parser.error("chat mode requires message text")
        raise SystemExit(asyncio.run(run_chat(text, args.audio)))
    else:
        if not text.strip():
            parser.error("test-app mode requires input text")
        raise SystemExit(asyncio.run(run_test_app(text)))


if __name__ == "__main__":
    main()
