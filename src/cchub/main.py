"""
CCHub Console

Drives the dialogue engine from the terminal, one message at a time, so
flows can be tried without a WhatsApp number. Without a resolver token the
fixture PayCode table is used (try CCH234567).
"""

import asyncio
import logging
import os

from dotenv import load_dotenv

from cchub.config import BotSettings
from cchub.engine import DialogueEngine
from cchub.integrations.whatsapp import MessageSender


# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


class ConsoleSender(MessageSender):
    """Prints replies instead of sending them."""

    async def send(self, user_id: str, text: str) -> bool:
        print(f"\n🤖 Bot:\n{text}\n")
        return True


def print_banner():
    """Print CCHub banner."""
    print("\n" + "=" * 60)
    print("  CCHub WhatsApp Bot - Console")
    print("  Send 'hi' to start, 'quit' to exit")
    print("=" * 60 + "\n")


async def run_console(engine: DialogueEngine, user_id: str):
    await engine.start()
    try:
        while True:
            try:
                user_input = input("💬 You: ").strip()
            except (EOFError, KeyboardInterrupt):
                print("\n\n👋 Goodbye!")
                break

            if not user_input:
                continue

            if user_input.lower() in ["quit", "exit", "q"]:
                print("\n👋 Goodbye!")
                break

            await engine.handle_message(user_id, user_input)
    finally:
        await engine.stop()


def main():
    """Main CLI application."""
    load_dotenv()

    settings = BotSettings()
    if not settings.resolver_token:
        logger.info("No resolver token configured; using fixture PayCodes")
        settings = settings.model_copy(update={"resolver_mode": "fixture"})

    user_id = os.getenv("CCHUB_CONSOLE_USER", "263771234567")

    print_banner()
    engine = DialogueEngine(settings=settings, sender=ConsoleSender())
    asyncio.run(run_console(engine, user_id))


if __name__ == "__main__":
    main()
