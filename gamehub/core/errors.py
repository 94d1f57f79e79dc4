"""
Domain errors. Each carries the HTTP status the API layer answers with.
"""


class GameHubError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RuleViolation(GameHubError):
    """The request is well-formed but breaks a domain rule (already friends, blocked pair...)."""

    status_code = 400


class NotAuthorized(GameHubError):
    status_code = 401


class Forbidden(GameHubError):
    status_code = 403


class NotFound(GameHubError):
    status_code = 404


class ValidationFailed(GameHubError):
    status_code = 422

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class RateLimited(GameHubError):
    status_code = 429

    def __init__(self, message: str, retry_after: int):
        super().__init__(message)
        self.retry_after = retry_after
