"""Dual-scheme request authentication for write endpoints.

Either scheme grants access:

1. Signed token: ``Authorization: Bearer <jwt>`` verified with the shared
   ``jwt_secret`` (HS256).
2. Timestamped HMAC: ``X-Timestamp`` (epoch milliseconds) within the skew
   window and ``X-Signature`` equal to
   ``hex(HMAC-SHA256(hmac_secret, raw_body + "." + timestamp))``.

With neither secret configured the gate is open.
"""

import hashlib
import hmac
import logging
import math
import time
from collections.abc import Callable, Mapping

from jose import JWTError, jwt

logger = logging.getLogger(__name__)

_READ_METHODS = {"GET", "HEAD", "OPTIONS"}


def sign_request(secret: str, raw_body: bytes, timestamp: str) -> str:
    """Compute the HMAC-SHA256 signature expected for a timestamped request."""
    message = raw_body + b"." + timestamp.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


class AuthGate:
    def __init__(
        self,
        jwt_secret: str = "",
        hmac_secret: str = "",
        max_skew_seconds: int = 300,
        clock: Callable[[], float] = time.time,
    ):
        self.jwt_secret = jwt_secret
        self.hmac_secret = hmac_secret
        self.max_skew_seconds = max_skew_seconds
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return bool(self.jwt_secret or self.hmac_secret)

    def verify_token(self, authorization: str) -> dict | None:
        """Return the token claims, or None when missing or invalid."""
        if not self.jwt_secret:
            return None
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return None
        try:
            return jwt.decode(
                token.strip(),
                self.jwt_secret,
                algorithms=["HS256"],
                options={"verify_aud": False},
            )
        except JWTError as exc:
            logger.debug("JWT verification failed: %s", exc)
            return None

    def verify_hmac(self, timestamp: str, signature: str, raw_body: bytes) -> bool:
        if not self.hmac_secret or not timestamp or not signature:
            return False
        try:
            sent_ms = float(timestamp)
        except ValueError:
            return False
        skew = abs(self._clock() * 1000 - sent_ms) / 1000
        if not math.isfinite(skew) or skew > self.max_skew_seconds:
            return False
        expected = sign_request(self.hmac_secret, raw_body, timestamp)
        return hmac.compare_digest(expected.encode("ascii"), signature.encode("latin-1", "replace"))

    def is_authorized(self, method: str, headers: Mapping[str, str], raw_body: bytes) -> bool:
        """Apply the gate to a request. Reads are exempt."""
        if not self.enabled:
            return True
        if method.upper() in _READ_METHODS:
            return True
        if self.verify_token(headers.get("authorization", "")) is not None:
            return True
        return self.verify_hmac(
            headers.get("x-timestamp", ""),
            headers.get("x-signature", ""),
            raw_body,
        )
