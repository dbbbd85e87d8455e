"""Error taxonomy and the boundary handler.

This is the only module that maps failures to status codes and caller-facing
messages. Components raise their own typed errors; ``classify_error`` turns
any exception into an ``AppError`` and ``handle_error`` renders it.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..errors import (
    CallTimeoutError,
    ConfigurationError,
    EmbeddingError,
    GenerationError,
    VectorDBError,
)
from ..safety.json_parser import ParseError, ParseErrorKind
from ..safety.prompt_guard import PromptSecurityError

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTHORIZATION_ERROR = "AUTHORIZATION_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    EMBEDDING_ERROR = "EMBEDDING_ERROR"
    VECTOR_SEARCH_ERROR = "VECTOR_SEARCH_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


DEFAULT_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.AUTHORIZATION_ERROR: 403,
    ErrorKind.RATE_LIMIT_ERROR: 429,
    ErrorKind.TIMEOUT_ERROR: 504,
    ErrorKind.EMBEDDING_ERROR: 500,
    ErrorKind.VECTOR_SEARCH_ERROR: 500,
    ErrorKind.PARSE_ERROR: 400,
    ErrorKind.UNKNOWN_ERROR: 500,
}

USER_MESSAGES: dict[str, dict[ErrorKind, str]] = {
    "en": {
        ErrorKind.VALIDATION_ERROR: "There is a problem with the input. Please check it and try again.",
        ErrorKind.AUTHORIZATION_ERROR: "You do not have permission to perform this operation.",
        ErrorKind.RATE_LIMIT_ERROR: "Too many requests. Please wait a moment.",
        ErrorKind.TIMEOUT_ERROR: "The request timed out. Please try again.",
        ErrorKind.EMBEDDING_ERROR: "The embedding service could not process the request.",
        ErrorKind.VECTOR_SEARCH_ERROR: "The project search service is currently unavailable.",
        ErrorKind.PARSE_ERROR: "The data could not be read safely.",
        ErrorKind.UNKNOWN_ERROR: "An unexpected error occurred. Please try again later.",
    },
    "ja": {
        ErrorKind.VALIDATION_ERROR: "入力内容に問題があります。内容を確認してください。",
        ErrorKind.AUTHORIZATION_ERROR: "この操作を行う権限がありません。",
        ErrorKind.RATE_LIMIT_ERROR: "リクエストが多すぎます。しばらくお待ちください。",
        ErrorKind.TIMEOUT_ERROR: "処理がタイムアウトしました。再度お試しください。",
        ErrorKind.EMBEDDING_ERROR: "埋め込みサービスでリクエストを処理できませんでした。",
        ErrorKind.VECTOR_SEARCH_ERROR: "プロジェクト検索サービスが現在利用できません。",
        ErrorKind.PARSE_ERROR: "データを安全に読み取れませんでした。",
        ErrorKind.UNKNOWN_ERROR: "予期しないエラーが発生しました。しばらくお待ちください。",
    },
}

_SUGGESTIONS: dict[str, dict[str, str]] = {
    "en": {
        "fix_input": "Check the request fields and try again",
        "check_key": "Check that the API key is configured",
        "check_env": "Check the environment settings",
        "retry_after": "Try again in {seconds} seconds",
        "wait": "Wait a moment and try again",
        "network": "Check your network connection",
    },
    "ja": {
        "fix_input": "入力項目を確認して再度お試しください",
        "check_key": "APIキーが正しく設定されているか確認してください",
        "check_env": "環境変数の設定を確認してください",
        "retry_after": "{seconds}秒後に再度お試しください",
        "wait": "しばらく待ってから再度お試しください",
        "network": "ネットワーク接続を確認してください",
    },
}

# Codes meaning the backend answered or was reached and refused; these are 502.
_EMBEDDING_BACKEND_CODES = frozenset({
    "AUTH_FAILED",
    "RATE_LIMIT",
    "INVALID_REQUEST",
    "SERVER_ERROR",
    "HTTP_ERROR",
    "NO_EMBEDDINGS",
    "INVALID_RESPONSE",
    "CONNECTION_REFUSED",
    "MODEL_NOT_FOUND",
    "OLLAMA_ERROR",
})
# Fixed-phrase messages that are safe to show callers as a hint.
_EMBEDDING_PUBLIC_CODES = frozenset({"AUTH_FAILED", "RATE_LIMIT", "SERVER_ERROR", "MODEL_NOT_FOUND"})
_VECTOR_BACKEND_CODES = frozenset({"CONNECTION_ERROR", "AUTH_ERROR", "NOT_FOUND", "QDRANT_ERROR"})


def suggestion(key: str, locale: str = "en", **params: Any) -> str:
    table = _SUGGESTIONS.get(locale, _SUGGESTIONS["en"])
    return table[key].format(**params)


def user_message(kind: ErrorKind, locale: str = "en") -> str:
    return USER_MESSAGES.get(locale, USER_MESSAGES["en"])[kind]


class AppError(Exception):
    """A classified failure: kind, status, internal message and caller hints."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        context: dict[str, Any] | None = None,
        suggestions: list[str] | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.context = context or {}
        self.suggestions = suggestions or []
        self.status = status if status is not None else DEFAULT_STATUS[kind]


class ApiResponse(BaseModel):
    """Framework-agnostic HTTP-shaped response."""

    status: int
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()


def validation_error(message: str, details: list[str] | None = None, locale: str = "en") -> AppError:
    return AppError(
        ErrorKind.VALIDATION_ERROR,
        message,
        {"validationErrors": details} if details else None,
        list(details) if details else [suggestion("fix_input", locale)],
    )


def authorization_error(message: str, locale: str = "en") -> AppError:
    return AppError(
        ErrorKind.AUTHORIZATION_ERROR,
        message,
        suggestions=[suggestion("check_key", locale), suggestion("check_env", locale)],
    )


def rate_limit_error(retry_after: int | None = None, locale: str = "en") -> AppError:
    hint = suggestion("retry_after", locale, seconds=retry_after) if retry_after else suggestion("wait", locale)
    return AppError(
        ErrorKind.RATE_LIMIT_ERROR,
        "Rate limit exceeded",
        {"retryAfter": retry_after} if retry_after else None,
        [hint],
    )


def timeout_error(message: str, locale: str = "en") -> AppError:
    return AppError(
        ErrorKind.TIMEOUT_ERROR,
        message,
        suggestions=[suggestion("wait", locale), suggestion("network", locale)],
    )


def _validation_details(exc: ValidationError) -> list[str]:
    details = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "body"
        details.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return details


def _classify_by_message(exc: BaseException, locale: str) -> AppError:
    message = str(exc) or type(exc).__name__
    lowered = message.lower()
    if "timeout" in lowered or "timed out" in lowered:
        return timeout_error(message, locale)
    if "rate limit" in lowered or "too many requests" in lowered or "429" in lowered:
        return AppError(ErrorKind.RATE_LIMIT_ERROR, message, suggestions=[suggestion("wait", locale)])
    if "forbidden" in lowered or "unauthorized" in lowered or "403" in lowered:
        return authorization_error(message, locale)
    if "validation" in lowered or "invalid" in lowered:
        return validation_error(message, locale=locale)
    return AppError(ErrorKind.UNKNOWN_ERROR, message)


def classify_error(exc: BaseException, locale: str = "en") -> AppError:
    """Map any exception to an ``AppError``. Typed errors first, then message heuristics.

    Generation failures have no kind of their own: they are ``UNKNOWN_ERROR``
    with the fixed 500 status, and the logged context names the stage.
    """
    if isinstance(exc, AppError):
        return exc

    if isinstance(exc, EmbeddingError):
        context = {"code": exc.code}
        if exc.code == "MISSING_API_KEY":
            err = authorization_error(str(exc), locale)
            err.context.update(context)
            return err
        status = 502 if exc.code in _EMBEDDING_BACKEND_CODES else 500
        hints = [str(exc)] if exc.code in _EMBEDDING_PUBLIC_CODES else []
        return AppError(ErrorKind.EMBEDDING_ERROR, str(exc), context, hints, status)

    if isinstance(exc, VectorDBError):
        status = 502 if exc.code in _VECTOR_BACKEND_CODES else 500
        return AppError(ErrorKind.VECTOR_SEARCH_ERROR, str(exc), {"code": exc.code}, status=status)

    if isinstance(exc, GenerationError):
        if exc.code == "MISSING_API_KEY":
            err = authorization_error(str(exc), locale)
            err.context["code"] = exc.code
            return err
        return AppError(ErrorKind.UNKNOWN_ERROR, str(exc), {"code": exc.code, "stage": "generation"})

    if isinstance(exc, ParseError):
        status = 422 if exc.kind in (ParseErrorKind.SIZE_EXCEEDED, ParseErrorKind.DEPTH_EXCEEDED) else 400
        return AppError(ErrorKind.PARSE_ERROR, str(exc), {"parseErrorKind": exc.kind.value}, status=status)

    if isinstance(exc, CallTimeoutError):
        err = timeout_error(str(exc), locale)
        err.context.update({"stage": exc.stage, "timeoutSeconds": exc.timeout_seconds})
        return err

    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return timeout_error(str(exc) or "Operation timed out", locale)

    if isinstance(exc, ValidationError):
        return validation_error("Request validation failed", _validation_details(exc), locale)

    if isinstance(exc, PromptSecurityError):
        return AppError(
            ErrorKind.VALIDATION_ERROR,
            str(exc),
            {"violation": exc.violation.value},
            [suggestion("fix_input", locale)],
        )

    if isinstance(exc, PermissionError):
        return authorization_error(str(exc), locale)

    if isinstance(exc, ConfigurationError):
        return AppError(ErrorKind.UNKNOWN_ERROR, str(exc), {"stage": "configuration"})

    return _classify_by_message(exc, locale)


def handle_error(
    exc: BaseException,
    context: dict[str, Any] | None = None,
    *,
    debug: bool = False,
    locale: str = "en",
    headers: dict[str, str] | None = None,
) -> ApiResponse:
    """Log ``exc`` with full context and render the caller-safe response."""
    app_error = classify_error(exc, locale)
    merged_context = {**app_error.context, **(context or {})}
    timestamp = datetime.now(timezone.utc).isoformat()

    log_extra = {
        "error_kind": app_error.kind.value,
        "status_code": app_error.status,
        "original_message": app_error.message,
        "error_context": merged_context,
    }
    if app_error.status >= 500:
        logger.error("API error", extra=log_extra, exc_info=exc)
    else:
        logger.warning("API warning", extra=log_extra)

    body: dict[str, Any] = {
        "error": user_message(app_error.kind, locale),
        "type": app_error.kind.value,
        "timestamp": timestamp,
    }
    if app_error.suggestions:
        body["suggestions"] = app_error.suggestions
    if debug:
        body["details"] = {"originalMessage": app_error.message, "context": merged_context}

    return ApiResponse(status=app_error.status, headers=dict(headers or {}), body=body)
