"""
CCHub Webhook Server

Receives WhatsApp Cloud API webhooks and hands text messages to the
dialogue engine. Every POST is acknowledged with 200 so the platform does
not redeliver; problems are logged instead.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv
from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse

# Load environment variables (tokens, resolver URL)
load_dotenv()

from cchub.config import BotSettings
from cchub.engine import DialogueEngine
from cchub.errors import MalformedMessageError
from cchub.integrations.resolver import BaseCodeResolver
from cchub.integrations.whatsapp import MessageSender, WhatsAppSender


logger = logging.getLogger(__name__)


class BotContainer:
    """Wires the bot components for one process."""

    def __init__(
        self,
        settings: Optional[BotSettings] = None,
        sender: Optional[MessageSender] = None,
        resolver: Optional[BaseCodeResolver] = None,
    ):
        self.settings = settings or BotSettings()
        self.sender = sender or WhatsAppSender.from_settings(self.settings)
        self.engine = DialogueEngine(settings=self.settings, sender=self.sender, resolver=resolver)
        logger.info("CCHub components initialized")


def extract_messages(payload: Dict[str, Any]) -> List[Tuple[str, str, Optional[str]]]:
    """
    (sender, type, text) for each message in a webhook payload.

    Status-only events yield nothing. Text is None for non-text messages.

    Raises:
        MalformedMessageError: The payload does not have the webhook shape
    """
    try:
        changes = [change for entry in payload.get("entry", []) for change in entry.get("changes", [])]
        found = []
        for change in changes:
            for message in change.get("value", {}).get("messages", []) or []:
                kind = message.get("type", "")
                text = (message.get("text") or {}).get("body") if kind == "text" else None
                found.append((message["from"], kind, text))
        return found
    except (AttributeError, KeyError, TypeError) as e:
        raise MalformedMessageError(f"Unexpected webhook shape: {e}") from e


def create_app(container: Optional[BotContainer] = None) -> FastAPI:
    """Build the FastAPI app around a container (default: from environment)."""
    bot = container or BotContainer()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await bot.engine.start()
        yield
        await bot.engine.stop()

    app = FastAPI(title="CCHub WhatsApp Bot", version="1.0.0", lifespan=lifespan)
    app.state.bot = bot

    @app.get("/")
    async def root():
        return {"status": "online", "system": "CCHub WhatsApp Bot"}

    @app.get("/webhook")
    async def verify_webhook(
        mode: Optional[str] = Query(default=None, alias="hub.mode"),
        token: Optional[str] = Query(default=None, alias="hub.verify_token"),
        challenge: Optional[str] = Query(default=None, alias="hub.challenge"),
    ):
        """Subscription handshake: echo the challenge when the token matches."""
        expected = bot.settings.verify_token
        if mode == "subscribe" and expected and token == expected:
            logger.info("✅ Webhook verified")
            return PlainTextResponse(challenge or "")

        logger.warning("Webhook verification failed")
        return PlainTextResponse("Forbidden", status_code=403)

    @app.post("/webhook")
    async def receive_webhook(request: Request):
        try:
            payload = await request.json()
        except ValueError:
            logger.warning("Webhook body is not JSON; acknowledged")
            return {"status": "ignored"}

        if not isinstance(payload, dict):
            logger.warning("Webhook body is not an object; acknowledged")
            return {"status": "ignored"}

        try:
            messages = extract_messages(payload)
        except MalformedMessageError as e:
            logger.warning(f"Malformed webhook event: {e}")
            return {"status": "ignored"}

        handled = 0
        for sender_id, kind, text in messages:
            if kind != "text":
                logger.info(f"Ignoring non-text message ({kind})")
                continue
            try:
                await bot.engine.handle_message(sender_id, text)
                handled += 1
            except MalformedMessageError as e:
                logger.warning(f"Malformed message skipped: {e}")

        if messages and not handled:
            return {"status": "ignored"}
        return {"status": "ok"}

    @app.get("/debug/env-check")
    async def env_check():
        """Which settings are present. Values are never returned."""
        s = bot.settings
        return {
            "whatsapp_access_token": bool(s.whatsapp_access_token),
            "whatsapp_phone_number_id": bool(s.whatsapp_phone_number_id),
            "verify_token": bool(s.verify_token),
            "resolver_token": bool(s.resolver_token),
            "resolver_base_url": bool(s.resolver_base_url),
            "resolver_fixture_mode": s.resolver_mode == "fixture",
        }

    @app.get("/test-paycode/{code}")
    async def test_paycode(code: str):
        """Format check plus a live resolution, without touching rate limits."""
        engine = bot.engine
        cleaned = engine.extractor.clean(code)
        violation = engine.validator.check_format(cleaned)
        if violation is not None:
            return JSONResponse(
                status_code=400,
                content={
                    "code": cleaned,
                    "format_ok": False,
                    "rule": violation.rule_name,
                    "kind": violation.kind.value,
                },
            )

        result = await engine.resolver.resolve(cleaned)
        return {
            "code": cleaned,
            "format_ok": True,
            "resolution": result.model_dump(mode="json"),
        }

    return app


app = create_app()
