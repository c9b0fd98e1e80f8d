"""Terminal chat entry point."""

import argparse
import asyncio
import logging

from src.chat.pipeline import ChatPipeline
from src.config import settings
from src.retrieval.search import SearchError, is_search_configured

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


async def chat(user_id: str) -> None:
    """Read lines from stdin and run them through the pipeline until EOF."""
    pipeline = ChatPipeline(user_id)
    print(await pipeline.greeting())

    while True:
        try:
            line = await asyncio.to_thread(input, "> ")
        except EOFError:
            break

        try:
            turns = await pipeline.submit(line)
        except SearchError as exc:
            print(f"[search failed] {exc}")
            continue
        except Exception:
            logger.exception("Error generating response")
            print("Something went wrong. Check the logs.")
            continue

        for turn in turns:
            print(turn.reply)


def main() -> None:
    """Start an interactive chat session."""
    parser = argparse.ArgumentParser(description="Chat with the opportunity assistant.")
    parser.add_argument("--user", default="local", help="User ID to scope memory and history")
    args = parser.parse_args()

    if not is_search_configured():
        logger.warning("TAVILY_API_KEY is not set — /search will fail")

    logger.info("Starting chat for %s with model %s...", args.user, settings.claude_model)
    asyncio.run(chat(args.user))


if __name__ == "__main__":
    main()
