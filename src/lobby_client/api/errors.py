"""
OCGP Lobby Client - API Errors
"""


class ApiError(Exception):
    """A request failed; ``message`` is safe to show to the user.

    ``status`` is the HTTP status code, or None when the request never
    produced a response (connection refused, timeout, bad JSON).
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status

    @property
    def is_not_found(self) -> bool:
        return self.status == 404
