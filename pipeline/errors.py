from __future__ import annotations


class HandlerError(Exception):
    """Terminal failure of the detection handler, rendered as `{"error": message}`."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class Unauthorized(HandlerError):
    status_code = 401
    message = "Unauthorized"


class BadRequest(HandlerError):
    status_code = 400
    message = "No image file provided"


class UploadError(HandlerError):
    message = "Failed to upload image"


class AIError(HandlerError):
    message = "Failed to analyze image"


class RateLimited(AIError):
    status_code = 429
    message = "Rate limit exceeded. Please try again later."


class PaymentRequired(AIError):
    status_code = 402
    message = "AI credits exhausted. Please add credits to continue."


class ParseFailure(HandlerError):
    """AI content held no usable detection array. Recovered with a fallback."""

    message = "Failed to parse AI response"


class DatabaseError(HandlerError):
    message = "Failed to save detection results"


class InternalError(HandlerError):
    pass


MISSING_AUTH_HEADER = "Missing authorization header"


def ai_error_for_status(status_code: int) -> AIError:
    """Map a non-success gateway status to the error the caller sees."""
    if status_code == 429:
        return RateLimited()
    if status_code == 402:
        return PaymentRequired()
    return AIError()
