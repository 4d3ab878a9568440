"""Intent classification and number extraction for token commands."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class IntentType(str, Enum):
    """Things a user can ask the token manager to do."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    LIST = "list"
    GET = "get"
    UNKNOWN = "unknown"


# First integer literal anywhere in the text
NUMBER_PATTERN = re.compile(r"[0-9]+")


def extract_number(text: str) -> Optional[int]:
    """Return the first integer literal in text, or None.

    Only the first run of digits is considered. A run that parses to zero
    counts as no number at all.
    """
    match = NUMBER_PATTERN.search(text)
    if not match:
        return None
    number = int(match.group(0))
    return number or None


@dataclass
class Intent:
    """A classified utterance."""

    type: IntentType
    raw_input: str
    keyword: Optional[str] = None  # The keyword that decided the type
    token_id: Optional[int] = None  # Number already present in the utterance

    def __str__(self) -> str:
        parts = [f"Intent({self.type.value}"]
        if self.keyword:
            parts.append(f", keyword={self.keyword}")
        if self.token_id is not None:
            parts.append(f", token_id={self.token_id}")
        parts.append(")")
        return "".join(parts)


class KeywordIntentParser:
    """Keyword-containment intent parser.

    Plain substring tests, case-insensitive, no word boundaries: "renew"
    contains "new". The first intent with a matching keyword wins.
    """

    # ORDER MATTERS - checked top to bottom
    # ("new token please delete" is a create, not a delete)
    KEYWORDS: dict[IntentType, tuple[str, ...]] = {
        IntentType.CREATE: ("create", "new"),
        IntentType.UPDATE: ("update", "edit", "modify"),
        IntentType.DELETE: ("delete", "remove"),
        IntentType.LIST: ("list", "enumerate", "tokens"),
        IntentType.GET: ("get", "which", "what"),
    }

    @classmethod
    def parse(cls, user_input: str) -> Intent:
        """Classify user input.

        Args:
            user_input: Turn text, after token substitution

        Returns:
            Parsed Intent; type is UNKNOWN if no keyword matched
        """
        text = user_input.lower()
        token_id = extract_number(user_input)

        for intent_type, keywords in cls.KEYWORDS.items():
            for keyword in keywords:
                if keyword in text:
                    return Intent(
                        type=intent_type,
                        raw_input=user_input,
                        keyword=keyword,
                        token_id=token_id,
                    )

        return Intent(type=IntentType.UNKNOWN, raw_input=user_input, token_id=token_id)


def parse_intent(user_input: str) -> Intent:
    """Parse user input into an Intent."""
    return KeywordIntentParser.parse(user_input)
