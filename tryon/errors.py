from __future__ import annotations


class TryOnError(RuntimeError):
    """Base error for the try-on pipeline. `error_type` is a stable tag for callers."""

    def __init__(self, message: str, error_type: str = "UNKNOWN"):
        super().__init__(message)
        self.error_type = error_type


class GenerationError(TryOnError):
    def __init__(self, message: str, error_type: str = "GOOGLE_AI_ERROR", retryable: bool = False):
        super().__init__(message, error_type=error_type)
        self.retryable = retryable


def classify_error_message(message: str) -> str:
    """
    Map a free-form error message to an error type tag.

    Rules are applied in order and later matches win, so a message that
    mentions both an image and a timeout is a TIMEOUT_ERROR.
    """
    msg = (message or "").upper()
    error_type = "UNKNOWN"
    if "GOOGLE AI" in msg or "GEMINI" in msg:
        error_type = "GOOGLE_AI_ERROR"
    if "IMAGE" in msg:
        error_type = "IMAGE_PROCESSING_ERROR"
    if "TIMEOUT" in msg or "TIMED OUT" in msg:
        error_type = "TIMEOUT_ERROR"
    if "QUOTA" in msg or "429" in msg:
        error_type = "QUOTA_ERROR"
    if "SAFETY" in msg or "BLOCKED" in msg:
        error_type = "SAFETY_ERROR"
    return error_type
