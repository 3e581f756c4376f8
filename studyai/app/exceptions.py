"""Custom exceptions for the gateway application."""


class GatewayException(Exception):
    """Base class for gateway exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code for consistent HTTP response handling.
    The message is shown to the end user as `{"error": message}`.
    """
    status_code: int = 500

    def __init__(self, message: str = "Gateway error"):
        self.message = message
        super().__init__(message)


class BadRequestError(GatewayException):
    """Raised when the study request body is missing fields or malformed.

    Maps to HTTP 400 Bad Request.
    """
    status_code = 400

    def __init__(self, message: str = "Message and mode are required"):
        super().__init__(message)


class AuthenticationError(GatewayException):
    """Raised when the bearer token is missing or rejected.

    Maps to HTTP 401 Unauthorized.
    """
    status_code = 401

    def __init__(self, detail: str = "Unauthorized"):
        self.detail = detail
        super().__init__(detail)


class QuotaExceededError(GatewayException):
    """Raised when a non-premium account has used its daily allowance.

    Maps to HTTP 402 Payment Required. No upstream call has been made.
    """
    status_code = 402

    def __init__(self, used: int = 0, limit: int = 0, detail: str | None = None):
        self.used = used
        self.limit = limit
        message = detail or (
            f"You've used all {limit} free requests for today. "
            "Upgrade to Premium for unlimited access!"
        )
        super().__init__(message)


class RateLimitedError(GatewayException):
    """Raised when the upstream completion service throttles the request.

    Maps to HTTP 429 Too Many Requests.
    """
    status_code = 429

    def __init__(self, message: str = "Rate limit exceeded. Please try again in a moment."):
        super().__init__(message)


class PaymentRequiredError(GatewayException):
    """Raised when the upstream reports a billing problem on our side.

    Distinct from QuotaExceededError: the user's allowance is fine, the
    service account needs credits. Maps to HTTP 402.
    """
    status_code = 402

    def __init__(self, message: str = "AI service requires payment. Please add credits."):
        super().__init__(message)


class UpstreamError(GatewayException):
    """Raised for any other upstream failure or a malformed structured payload.

    Maps to HTTP 500.
    """
    status_code = 500

    def __init__(self, message: str = "AI service error. Please try again."):
        super().__init__(message)


class InternalError(GatewayException):
    """Raised for account setup failures and missing server configuration.

    Maps to HTTP 500.
    """
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
