"""Helpers for reading numbers out of chat messages."""

import re
from typing import Optional


def normalize(text: Optional[str]) -> str:
    """Trimmed, lowercased text with trailing punctuation dropped."""
    if not text:
        return ""
    return text.strip().lower().rstrip("!.?")


def parse_choice(text: Optional[str]) -> Optional[int]:
    """Menu option number ("1", " 2 "), or None."""
    cleaned = (text or "").strip().rstrip(".")
    if re.fullmatch(r"\d{1,2}", cleaned):
        return int(cleaned)
    return None


def parse_amount(text: Optional[str]) -> Optional[float]:
    """
    Money amount from free text.

    Accepts "10", "10.50", "$10", "1,000", "USD 25". Returns None for
    anything else, including negative numbers.
    """
    cleaned = (text or "").strip().lower()
    cleaned = re.sub(r"^(usd|\$)\s*", "", cleaned)
    cleaned = cleaned.replace(",", "").replace(" ", "")
    if re.fullmatch(r"\d+(\.\d{1,2})?", cleaned):
        return float(cleaned)
    return None


def digits_only(text: Optional[str]) -> str:
    """Text reduced to its digits, for inputs typed with spaces or dashes."""
    return re.sub(r"\D", "", text or "")
