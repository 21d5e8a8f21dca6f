"""Error taxonomy for the Newsroom API.

Every error the API reports to a client derives from ``NewsroomAPIError`` and
carries the HTTP status it maps to. The API layer renders them as JSend
envelopes (see ``api.main``).
"""


class NewsroomAPIError(Exception):
    """Base exception for errors reported to API clients."""

    status_code: int = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(NewsroomAPIError):
    """
    Raised when a request payload fails a structural or semantic rule.

    Maps to 400. ``field`` names the offending field in dotted form, for
    example ``donor.email``.
    """

    status_code = 400

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class Unauthenticated(NewsroomAPIError):
    """Raised when no valid identity can be established. Maps to 401."""

    status_code = 401


class Forbidden(NewsroomAPIError):
    """
    Raised when the authenticated identity may not act on a resource.

    Maps to 403. Covers both a mismatching ``user_id`` claim in a request and
    a stored record owned by someone else.
    """

    status_code = 403


class NotFound(NewsroomAPIError):
    """Raised when the addressed record does not exist. Maps to 404."""

    status_code = 404


class GatewayError(NewsroomAPIError):
    """
    Raised when the payment gateway rejects a charge or cannot be reached.

    Maps to 500. Charges are attempted once; nothing is persisted for a
    failed charge.
    """

    status_code = 500

    def __init__(self, message: str, code: str | None = None, order_number: str | None = None):
        super().__init__(message)
        self.code = code
        self.order_number = order_number


class MailServiceError(NewsroomAPIError):
    """Raised when the mail delivery service rejects or drops a request."""

    status_code = 500
