"""PayCode extraction from free text.

Users paste codes in many shapes: ``cch-123 456``, ``PayCode: CCH123456``,
``cchub://pay/CCH123456`` or just the six digits. The extractor finds the
code, and ``clean`` reduces whatever was typed to the canonical form.
"""

import logging
import re
from typing import List, Optional, Tuple


logger = logging.getLogger(__name__)


# Characters users put between the prefix and the digits
SEPARATOR = r"[\s\-.]"

# Labels users put in front of a code
LABEL_KEYWORD = re.compile(r"\bpay\s*code\b|\bcode\s*[:#]", re.IGNORECASE)


class CodeExtractor:
    """
    Finds PayCodes in inbound text.

    Patterns are tried in a fixed order; first match wins:
    1. prefixed    - prefix immediately followed by the digits
    2. labelled    - "code:" / "paycode:" followed by a prefixed code
    3. uri         - scheme://verb/ followed by a prefixed code
    4. bare_digits - the digits alone (provisional, rejected downstream)
    """

    def __init__(self, prefix: str = "CCH", digits: int = 6):
        self.prefix = prefix.upper()
        self.digits = digits

        p = re.escape(self.prefix)
        # Digits may carry single separators: "123 456", "123-456"
        digit_run = rf"(\d(?:{SEPARATOR}?\d){{{digits - 1}}})(?!\d)"
        core = rf"{p}{SEPARATOR}*{digit_run}"

        self.patterns: List[Tuple[str, re.Pattern]] = [
            ("prefixed", re.compile(rf"(?<![A-Za-z0-9]){core}", re.IGNORECASE)),
            ("labelled", re.compile(rf"\b(?:pay\s*code|code)\s*[:#]?\s*{core}", re.IGNORECASE)),
            ("uri", re.compile(rf"\b[a-z][a-z0-9+.\-]*://[a-z0-9_\-]+/\s*{core}", re.IGNORECASE)),
            ("bare_digits", re.compile(rf"(?<![A-Za-z0-9])(\d{{{digits}}})(?![0-9])")),
        ]

        self._partial = re.compile(
            rf"(?<![A-Za-z0-9]){p}{SEPARATOR}*\d[0-9A-Za-z]*(?:{SEPARATOR}[0-9A-Za-z]+)*",
            re.IGNORECASE,
        )
        self._canonical = re.compile(rf"{p}(\d{{{digits}}})(?!\d)")
        self._prefixed = dict(self.patterns)["prefixed"]

    def canonical(self, digits: str) -> str:
        """Build the canonical code from its digit section."""
        return self.prefix + re.sub(r"\D", "", digits)

    def extract(self, text: Optional[str]) -> Optional[str]:
        """
        Extract the first code from free text.

        Returns:
            Canonical code for prefixed matches, the bare digits for a
            prefix-less match, or None.
        """
        if not text:
            return None

        for name, pattern in self.patterns:
            match = pattern.search(text)
            if not match:
                continue
            logger.debug(f"PayCode pattern '{name}' matched")
            if name == "bare_digits":
                return match.group(1)
            return self.canonical(match.group(1))

        return None

    def extract_all(self, text: Optional[str]) -> List[str]:
        """All distinct prefixed codes in the text, in order of appearance."""
        if not text:
            return []

        found: List[Tuple[int, str]] = []
        for name, pattern in self.patterns:
            if name == "bare_digits":
                continue
            for match in pattern.finditer(text):
                found.append((match.start(1), self.canonical(match.group(1))))

        codes: List[str] = []
        for _, code in sorted(found):
            if code not in codes:
                codes.append(code)
        return codes

    def looks_like_code(self, text: Optional[str]) -> bool:
        """
        Whether a message is code-shaped.

        True for any prefixed match, a partial code (prefix plus at least one
        digit), or a labelling keyword on its own.
        """
        if not text:
            return False
        if self._partial.search(text):
            return True
        return bool(LABEL_KEYWORD.search(text))

    def fragment(self, text: Optional[str]) -> Optional[str]:
        """The partial code in a code-shaped message, or the text after a label."""
        if not text:
            return None

        match = self._partial.search(text)
        if match:
            return match.group(0)

        label = LABEL_KEYWORD.search(text)
        if label:
            rest = text[label.end():].strip()
            return rest or None

        return None

    def clean(self, raw: Optional[str]) -> Optional[str]:
        """
        Reduce user input to canonical form.

        If a prefixed code is present in the raw text, exactly that code is
        returned, so trailing words or numbers never merge into it.
        Otherwise trims, strips everything outside [A-Za-z0-9] and uppercases.
        """
        if raw is None:
            return None

        text = raw.strip().upper()
        match = self._prefixed.search(text)
        if match:
            return self.canonical(match.group(1))

        stripped = re.sub(r"[^A-Za-z0-9]", "", text)
        if not stripped:
            return None

        match = self._canonical.search(stripped)
        if match:
            return f"{self.prefix}{match.group(1)}"

        return stripped
