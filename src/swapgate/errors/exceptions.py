"""Exception taxonomy for the gateway API."""


class GatewayError(Exception):
    """Base exception for the gateway."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class InvalidInput(GatewayError):
    """Malformed address, missing field or bad query value."""

    def __init__(self, message: str, details=None):
        super().__init__("INVALID_INPUT", message, details, status_code=400)


class NotFoundError(GatewayError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
            status_code=404,
        )


class Unauthorized(GatewayError):
    """Neither the signed-token nor the HMAC scheme accepted the request."""

    def __init__(self, message: str = "Unauthorized", code: str = "UNAUTHORIZED"):
        super().__init__(code, message, status_code=401)


class InvalidSignature(GatewayError):
    """Webhook signature missing or not matching the raw body."""

    def __init__(self, message: str = "Invalid webhook signature"):
        super().__init__("INVALID_SIGNATURE", message, status_code=401)


class TokenNotAllowed(GatewayError):
    """A referenced token is denied or missing from the allow-list."""

    def __init__(self, token_address: str):
        super().__init__(
            "TOKEN_NOT_ALLOWED",
            f"Token '{token_address}' is not allowed",
            status_code=400,
        )


class MethodNotAllowed(GatewayError):
    """JSON-RPC method outside the relay allow-list."""

    def __init__(self, method: str | None):
        super().__init__(
            "METHOD_NOT_ALLOWED",
            f"RPC method '{method}' is not allowed",
            status_code=400,
        )


class AccessDenied(GatewayError):
    """Request blocked by IP or geo gating."""

    def __init__(self, reason: str):
        super().__init__("ACCESS_DENIED", reason, status_code=451)


class UpstreamError(GatewayError):
    """Upstream service unreachable or answered with a non-2xx status."""

    def __init__(self, message: str, details=None):
        super().__init__("UPSTREAM_ERROR", message, details, status_code=502)


class ServerMisconfigured(GatewayError):
    """A required upstream credential or URL is not configured."""

    def __init__(self, message: str):
        super().__init__("SERVER_MISCONFIGURED", message, status_code=500)


class InternalError(GatewayError):
    """Unexpected fault. The message never carries internal detail."""

    def __init__(self, message: str = "Internal error"):
        super().__init__("INTERNAL_ERROR", message, status_code=500)
