class TryOnError(Exception):
    """Base error carrying the HTTP status and the message shown to callers."""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)
        self.message = message or self.public_message

    @property
    def client_message(self) -> str:
        return self.message


class TryOnValidationError(TryOnError):
    status_code = 400
    public_message = "Invalid request parameters"


class UnsupportedMediaTypeError(TryOnValidationError):
    status_code = 415
    public_message = "Unsupported media type"


class CollaboratorError(TryOnError):
    """The remote try-on model failed, timed out, or answered with an unexpected shape.

    ``message`` holds the internal detail for logs; callers only ever see
    ``public_message``.
    """

    status_code = 500
    public_message = "Virtual try-on generation failed"

    @property
    def client_message(self) -> str:
        return self.public_message
