"""Integrations module - PayCode resolution and WhatsApp delivery."""

from cchub.integrations.resolver import (
    BaseCodeResolver,
    CodeResolver,
    ResolutionResult,
    ResolutionStatus,
    StaticCodeResolver,
)
from cchub.integrations.whatsapp import MessageSender, WhatsAppSender

__all__ = [
    "BaseCodeResolver",
    "CodeResolver",
    "ResolutionResult",
    "ResolutionStatus",
    "StaticCodeResolver",
    "MessageSender",
    "WhatsAppSender",
]
