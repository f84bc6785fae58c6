"""Error taxonomy shared by the pipeline, the disclosure gate and the API.

Each error carries the HTTP status it maps to and a message that is safe
to show to the client.
"""


class DocVerifyError(Exception):
    """Base class for all service errors."""

    status_code = 500
    default_message = "An internal server error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInputError(DocVerifyError):
    """Missing or malformed request fields, or a unique-key conflict."""

    status_code = 400
    default_message = "All fields are required."


class UnauthorizedError(DocVerifyError):
    """Caller is not signed in, or a signature does not prove its address."""

    status_code = 401
    default_message = "Authentication required"


class ForbiddenError(DocVerifyError):
    """Caller proved a wallet, but not the one that owns the document."""

    status_code = 403
    default_message = "Access denied."


class NotFoundError(DocVerifyError):
    """Record or QR identifier is absent."""

    status_code = 404
    default_message = "Not found."


class ServiceUnavailableError(DocVerifyError):
    """A required capability has not finished initializing."""

    status_code = 503
    default_message = "Service is starting up, please retry shortly."


class InternalError(DocVerifyError):
    """Unexpected failure in an external call or persistence step."""


class TextExtractionError(InternalError):
    """OCR failed or timed out."""


class ContentStoreError(InternalError):
    """Pinning the file to the content-addressed store raised."""


class LedgerError(InternalError):
    """Submitting the anchoring transaction raised."""
