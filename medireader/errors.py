"""
Typed failures raised by the extraction pipeline and gateway proxies.

Every error carries a machine-readable ``code``, a human message and an
optional diagnostic payload. The API layer turns them into JSON error
responses using the class-level ``status_code``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# Upstream bodies and raw model text are cut to this length in diagnostics.
DIAGNOSTIC_TEXT_LIMIT = 200


class ErrorCode(str, Enum):
    DEVICE_NOT_SUPPORTED = "DEVICE_NOT_SUPPORTED"
    OPENAI_API_ERROR = "OPENAI_API_ERROR"
    OPENAI_REFUSAL = "OPENAI_REFUSAL"
    PROCESSING_FAILED = "PROCESSING_FAILED"
    BACKEND_ERROR = "BACKEND_ERROR"
    API_KEY_MISSING = "API_KEY_MISSING"
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"
    VALIDATION_ALREADY_APPLIED = "VALIDATION_ALREADY_APPLIED"
    GATEWAY_UNAVAILABLE = "GATEWAY_UNAVAILABLE"
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"


class ProcessingError(Exception):
    """Base class for every structured failure surfaced to callers."""

    status_code: int = 500

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": False,
            "error": self.message,
            "code": self.code.value,
            "details": self.details,
        }


class DeviceNotSupportedError(ProcessingError):
    status_code = 400

    def __init__(self, device_key: str) -> None:
        super().__init__(
            ErrorCode.DEVICE_NOT_SUPPORTED,
            f"Device model {device_key} is not supported",
            {"deviceKey": device_key},
        )
        self.device_key = device_key


class ExtractionCallError(ProcessingError):
    """The vision API answered with a non-success status."""

    status_code = 502

    def __init__(
        self,
        status: int,
        body: str,
        message: str | None = None,
        code: ErrorCode = ErrorCode.OPENAI_API_ERROR,
    ) -> None:
        body = (body or "")[:DIAGNOSTIC_TEXT_LIMIT]
        super().__init__(
            code,
            message or f"OpenAI API Error: {status} - {body}",
            {"status": status, "response": body},
        )
        self.upstream_status = status
        self.body = body


class BackendForwardError(ExtractionCallError):
    """The backend extraction endpoint answered with a non-success status."""

    def __init__(self, status: int, body: str) -> None:
        super().__init__(
            status,
            body,
            message=f"Backend error: {status} - {(body or '')[:DIAGNOSTIC_TEXT_LIMIT]}",
            code=ErrorCode.BACKEND_ERROR,
        )


class RefusalError(ProcessingError):
    """The model declined to analyze the image."""

    status_code = 422

    def __init__(self, raw_text: str) -> None:
        super().__init__(
            ErrorCode.OPENAI_REFUSAL,
            "OpenAI declined to analyze the image. Please retake the photo with the display clearly visible.",
            {"rawResponse": raw_text},
        )
        self.raw_text = raw_text


class MalformedOutputError(ProcessingError):
    """The model answered, but not with a parseable JSON array."""

    status_code = 502

    def __init__(self, message: str, raw_text: str) -> None:
        truncated = (raw_text or "")[:DIAGNOSTIC_TEXT_LIMIT]
        super().__init__(
            ErrorCode.PROCESSING_FAILED,
            message,
            {"rawResponse": truncated},
        )
        self.raw_text = truncated


class ApiKeyMissingError(ProcessingError):
    status_code = 503

    def __init__(self, purpose: str = "image processing") -> None:
        super().__init__(
            ErrorCode.API_KEY_MISSING,
            f"OpenAI API key is required for {purpose}",
        )


class DeviceConfigurationError(ProcessingError):
    """A device profile is internally inconsistent. Raised at startup."""

    def __init__(self, device_key: str, problems: list[str]) -> None:
        super().__init__(
            ErrorCode.INVALID_CONFIGURATION,
            f"Invalid configuration for {device_key}: " + "; ".join(problems),
            {"deviceKey": device_key, "problems": problems},
        )
        self.problems = problems


class AuthenticationError(ProcessingError):
    status_code = 401

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.AUTHENTICATION_FAILED, message)


class GatewayUnavailableError(ProcessingError):
    status_code = 502

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.GATEWAY_UNAVAILABLE, message, details)
