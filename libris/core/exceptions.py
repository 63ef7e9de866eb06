class LibrisAPIError(Exception):
    """Base for every failure the API reports back as a structured result.

    `reason` is the machine-readable code callers branch on; the exception
    message is the human-readable text shown to the user.
    """
    reason = "Error"
    default_message = "Request failed."

    def __init__(self, message=None, **context):
        super().__init__(message or self.default_message)
        self.context = context

    @property
    def message(self):
        return str(self)

class NotFoundError(LibrisAPIError):
    reason = "NotFound"
    default_message = "Not found."

class DocumentNotFoundError(NotFoundError):
    default_message = "Document not found"

class ReadingSessionNotFoundError(NotFoundError):
    default_message = "Reading session not found"

class BookNotFoundError(NotFoundError):
    default_message = "Book not found."

class RequestNotFoundError(NotFoundError):
    default_message = "Request not found."

class FineNotFoundError(NotFoundError):
    default_message = "Fine not found or already paid."

class UnauthorizedError(LibrisAPIError):
    reason = "Unauthorized"
    default_message = "Unauthorized"

class RestrictedAccessError(LibrisAPIError):
    reason = "RestrictedAccessDenied"
    default_message = "Access denied. This document is restricted."

class CooldownActiveError(LibrisAPIError):
    reason = "CooldownActive"

    def __init__(self, hours_remaining):
        super().__init__(
            "Access denied. You have reached the maximum attempts. "
            f"Please wait {hours_remaining} hour{'' if hours_remaining == 1 else 's'} before trying again.",
            hours_remaining=hours_remaining)
        self.hours_remaining = hours_remaining

class MaxAttemptsReachedError(LibrisAPIError):
    reason = "MaxAttemptsReached"

    def __init__(self, max_attempts, hours_remaining):
        super().__init__(
            f"Access denied. You have reached the maximum attempts ({max_attempts}). "
            f"Please wait {hours_remaining} hours before trying again.",
            max_attempts=max_attempts, hours_remaining=hours_remaining)
        self.max_attempts = max_attempts
        self.hours_remaining = hours_remaining

class QuantityMismatchError(LibrisAPIError):
    reason = "QuantityMismatch"

class NotEligibleError(LibrisAPIError):
    reason = "NotEligible"

class InvalidTransitionError(NotEligibleError):
    pass

class InvalidInputError(LibrisAPIError):
    reason = "InvalidInput"

class DatabaseInsertError(LibrisAPIError):
    reason = "DatabaseError"
