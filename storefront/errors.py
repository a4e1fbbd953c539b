"""Error taxonomy for the checkout and payment workflow.

Services raise these; create_app() registers a handler that renders them
as JSON with the matching HTTP status.
"""


class StorefrontError(Exception):
    """Base class. Carries an HTTP status and optional structured details."""

    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(StorefrontError):
    """Malformed input."""

    status_code = 400


class AuthenticationError(StorefrontError):
    """Callback signature did not verify."""

    status_code = 401


class NotFoundError(StorefrontError):
    """Unknown or inactive product, unknown transaction."""

    status_code = 404


class UpstreamError(StorefrontError):
    """The payment gateway call failed or returned an unusable response."""

    status_code = 502


class InternalError(StorefrontError):
    """Storage failure."""

    status_code = 500
