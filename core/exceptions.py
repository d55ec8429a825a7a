from starlette import status


class PollError(Exception):
    """Typed failure raised by the data-access layer and rendered as ``{"err": {code, message}}``."""

    code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Unknown error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_envelope(self) -> dict:
        return {"err": {"code": self.code, "message": self.message}}


class UnauthorizedError(PollError):
    code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class NotFoundError(PollError):
    # Ownership mismatches use this too, so callers cannot probe for foreign polls.
    code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ValidationError(PollError):
    code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class ConflictError(PollError):
    code = status.HTTP_409_CONFLICT
    default_message = "Conflicting concurrent update"
