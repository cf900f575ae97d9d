"""
Run Bot

Helper script to start the webhook server.
"""

import uvicorn
from dotenv import load_dotenv

from cchub.config import BotSettings


def main():
    """Start the webhook server."""
    load_dotenv()
    settings = BotSettings()

    print("=" * 60)
    print("  CCHub WhatsApp Bot")
    print("  Starting FastAPI server...")
    print("=" * 60)
    print(f"\n🌐 Webhook will listen at: http://{settings.host}:{settings.port}/webhook")
    print(f"📊 API docs available at: http://{settings.host}:{settings.port}/docs")
    print("\nPress Ctrl+C to stop\n")

    uvicorn.run(
        "cchub.server:app",
        host=settings.host,
        port=settings.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
