"""Error types raised across the review pipeline."""


class ReviewBotError(Exception):
    """Base class for all review bot errors."""


class ReviewServiceError(ReviewBotError):
    """The AI review service was unreachable or answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(ReviewBotError):
    """The AI review service answered, but its message could not be decoded."""


class RetriesExhaustedError(ReviewBotError):
    """Every attempt of a bounded retry failed."""

    def __init__(self, label: str, attempts: int, last_error: Exception | None):
        super().__init__(f"{label}: max retries ({attempts}) exceeded: {last_error}")
        self.label = label
        self.attempts = attempts
        self.last_error = last_error


class PlatformAPIError(ReviewBotError):
    """GitHub or GitLab rejected a request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AnchorError(ReviewBotError, ValueError):
    """A comment cannot be placed on the diff; never retried."""
