"""Input and payload safety: untrusted JSON, prompt text, request strings."""

from .json_parser import (
    DANGEROUS_KEYS,
    ParseError,
    ParseErrorKind,
    ParseLimits,
    safe_parse,
    safe_parse_with_fallback,
)
from .prompt_guard import (
    PromptSecurityError,
    PromptViolation,
    build_secure_prompt,
    sanitize_prompt_input,
)
from .sanitizer import sanitize_text

__all__ = [
    "DANGEROUS_KEYS",
    "ParseError",
    "ParseErrorKind",
    "ParseLimits",
    "PromptSecurityError",
    "PromptViolation",
    "build_secure_prompt",
    "safe_parse",
    "safe_parse_with_fallback",
    "sanitize_prompt_input",
    "sanitize_text",
]
