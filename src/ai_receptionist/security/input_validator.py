"""Pattern-based prompt injection gate for inbound user messages."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from loguru import logger

from ..models import RiskLevel

ROLE_OVERRIDE = "role_override"
PROMPT_EXTRACTION = "prompt_extraction"
ROLEPLAY = "roleplay"
DELIMITER_CONFUSION = "delimiter_confusion"
DAN_STYLE = "dan_style"
SPECIAL_TOKENS = "special_tokens"

HIGH_RISK_CATEGORIES = {ROLE_OVERRIDE, PROMPT_EXTRACTION, DELIMITER_CONFUSION}
MEDIUM_RISK_CATEGORIES = {ROLEPLAY, DAN_STYLE, SPECIAL_TOKENS}

_PATTERNS: list[tuple[str, str]] = [
    (r"ignore.*previous.*instructions?", ROLE_OVERRIDE),
    (r"you are now", ROLE_OVERRIDE),
    (r"forget.*(?:instructions?|role|system)", ROLE_OVERRIDE),
    (r"new instructions?:", ROLE_OVERRIDE),
    (r"override.*system", ROLE_OVERRIDE),
    (r"disregard.*(?:previous|above|prior)", ROLE_OVERRIDE),
    (
        r"(?:show|display|print|output|reveal|tell me).*(?:system prompt|instructions?|rules)",
        PROMPT_EXTRACTION,
    ),
    (r"what (?:are|is) your (?:instructions?|prompt|rules)", PROMPT_EXTRACTION),
    (r"repeat.*(?:instructions?|system prompt)", PROMPT_EXTRACTION),
    (r"pretend (?:to be|you are|you're)", ROLEPLAY),
    (r"act as (?:if|a|an)", ROLEPLAY),
    (r"roleplay", ROLEPLAY),
    (r"simulate.*(?:being|that you)", ROLEPLAY),
    (r"```system", DELIMITER_CONFUSION),
    (r"\[SYSTEM\]", DELIMITER_CONFUSION),
    (r"<\|im_start\|>", DELIMITER_CONFUSION),
    (r"<\|im_end\|>", DELIMITER_CONFUSION),
    (r"\[INST\]", DELIMITER_CONFUSION),
    (r"\[/INST\]", DELIMITER_CONFUSION),
    (r"Developer Mode", DAN_STYLE),
    (r"DAN.*do anything", DAN_STYLE),
    (r"jailbreak", DAN_STYLE),
    (r"evil mode", DAN_STYLE),
    (r"<\|endoftext\|>", SPECIAL_TOKENS),
    (r"<\|startoftext\|>", SPECIAL_TOKENS),
    (r"\[ASSISTANT\]", SPECIAL_TOKENS),
    (r"\[HUMAN\]", SPECIAL_TOKENS),
]

# Delimiters and special tokens removed from every input
_STRIP_PATTERN = re.compile(
    r"```system|\[SYSTEM\]|<\|im_start\|>|<\|im_end\|>|\[INST\]|\[/INST\]"
    r"|<\|endoftext\|>|<\|startoftext\|>|\[ASSISTANT\]|\[HUMAN\]",
    re.IGNORECASE,
)

HIGH_RISK_RESPONSE = "I'm here to help with legitimate questions. Please rephrase your request."
MEDIUM_RISK_RESPONSE = "I can't help with that. Let me know if you have other questions."


@dataclass
class SecurityResult:
    """Outcome of validating one input.

    ``detected_patterns`` lists matched categories (unique, in detection
    order); ``matched_patterns`` lists every matching ``"category: regex"``.
    """

    is_secure: bool
    sanitized_content: str
    risk_level: RiskLevel
    detected_patterns: list[str] = field(default_factory=list)
    matched_patterns: list[str] = field(default_factory=list)


class InputValidator:
    """Stateless regex matcher run once per inbound user message."""

    def __init__(self) -> None:
        self._patterns = [(re.compile(p, re.IGNORECASE), c) for p, c in _PATTERNS]

    def validate(self, text: str) -> SecurityResult:
        categories: list[str] = []
        matched: list[str] = []

        for regex, category in self._patterns:
            if regex.search(text):
                matched.append(f"{category}: {regex.pattern}")
                if category not in categories:
                    categories.append(category)

        risk = self._risk_level(categories)
        if categories:
            logger.warning(
                f"[InputValidator] Detected {', '.join(categories)} (risk={risk.value})"
            )

        return SecurityResult(
            is_secure=not categories,
            sanitized_content=self.sanitize(text),
            risk_level=risk,
            detected_patterns=categories,
            matched_patterns=matched,
        )

    @staticmethod
    def _risk_level(categories: list[str]) -> RiskLevel:
        found = set(categories)
        if found & HIGH_RISK_CATEGORIES:
            return RiskLevel.HIGH
        if found & MEDIUM_RISK_CATEGORIES:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    @staticmethod
    def sanitize(text: str) -> str:
        """Strip delimiter and special-token substrings, then trim.

        Removal repeats until nothing changes, so stripping one token cannot
        splice together another one (``[SYS[INST]TEM]``).
        """
        previous = None
        sanitized = text
        while sanitized != previous:
            previous = sanitized
            sanitized = _STRIP_PATTERN.sub("", sanitized).strip()
        return sanitized

    @staticmethod
    def get_security_response(risk_level: RiskLevel) -> str:
        if risk_level == RiskLevel.HIGH:
            return HIGH_RISK_RESPONSE
        return MEDIUM_RISK_RESPONSE

    @staticmethod
    def has_category(result: SecurityResult, category: str) -> bool:
        return category in result.detected_patterns
