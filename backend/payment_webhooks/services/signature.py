"""Webhook signature verification - constant-time HMAC-SHA256.

Two verification modes:
- timestamped: signature over "<timestamp>.<raw body>", and the timestamp must
  fall inside the tolerance window. This is the only mode with replay protection.
- body-only: signature over the raw body alone. Kept for producers that do not
  send X-Webhook-Timestamp. A captured request verifies forever, so this mode is
  reported separately and can be refused with require_timestamp=True.

Every failure path returns False (fail-closed); only a missing secret raises,
and it does so at construction time so the process cannot start without one.
"""
import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import Callable, Optional, Union

from payment_webhooks.core.logging import security_logger

DEFAULT_TOLERANCE_SECONDS = 300

MODE_TIMESTAMPED = "timestamped"
MODE_BODY_ONLY = "body-only"

RawBody = Union[bytes, str]


class WebhookSecretMissingError(RuntimeError):
    """Raised when the verifier is built without a shared secret"""


@dataclass(frozen=True)
class VerificationResult:
    valid: bool
    mode: Optional[str] = None
    reason: Optional[str] = None


def _to_bytes(raw_body: RawBody) -> bytes:
    if isinstance(raw_body, bytes):
        return raw_body
    return raw_body.encode("utf-8")


def _hex_digest(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def sign_payload(secret: str, raw_body: RawBody, timestamp: Optional[Union[int, str]] = None) -> str:
    """Compute the X-Webhook-Signature value a producer would send.

    Args:
        secret: Shared webhook secret
        raw_body: Exact request body
        timestamp: Unix seconds sent in X-Webhook-Timestamp, or None for body-only signing

    Returns:
        Hex-encoded HMAC-SHA256 signature
    """
    body = _to_bytes(raw_body)
    if timestamp is not None:
        body = f"{timestamp}.".encode("utf-8") + body
    return _hex_digest(secret, body)


class SignatureVerifier:
    """Authenticates webhook deliveries against one process-wide shared secret"""

    def __init__(
        self,
        secret: str,
        tolerance_seconds: int = DEFAULT_TOLERANCE_SECONDS,
        clock: Callable[[], float] = time.time,
        require_timestamp: bool = False,
    ):
        if not secret:
            raise WebhookSecretMissingError("WEBHOOK_SECRET is not configured")
        self._secret = secret
        self.tolerance_seconds = tolerance_seconds
        self.require_timestamp = require_timestamp
        self._clock = clock

    def verify(self, raw_body: RawBody, signature: Optional[str]) -> bool:
        """Verify a signature computed over the raw body alone (no replay protection)"""
        try:
            expected = _hex_digest(self._secret, _to_bytes(raw_body))
            # compare_digest does not short-circuit; a length mismatch returns False at once
            return hmac.compare_digest(expected.encode("ascii"), signature.encode("ascii"))
        except Exception as e:
            security_logger.warning(f"Signature verification error: {e}")
            return False

    def verify_with_timestamp(
        self,
        raw_body: RawBody,
        signature: Optional[str],
        timestamp: Optional[str],
        tolerance_seconds: Optional[int] = None,
    ) -> bool:
        """Verify a timestamped signature and reject deliveries outside the tolerance window"""
        tolerance = self.tolerance_seconds if tolerance_seconds is None else tolerance_seconds

        try:
            claimed = int(timestamp)
        except (TypeError, ValueError):
            security_logger.warning("Invalid webhook timestamp format")
            return False

        current = int(self._clock())
        drift = abs(current - claimed)
        if drift > tolerance:
            security_logger.warning(
                f"Webhook timestamp outside tolerance window. "
                f"Current: {current}, Payload: {claimed}, Difference: {drift}s"
            )
            return False

        try:
            signed_payload = f"{timestamp}.".encode("utf-8") + _to_bytes(raw_body)
        except Exception as e:
            security_logger.warning(f"Signature verification error: {e}")
            return False
        return self.verify(signed_payload, signature)

    def authenticate(
        self,
        raw_body: RawBody,
        signature: Optional[str],
        timestamp: Optional[str] = None,
    ) -> VerificationResult:
        """Pick the verification mode from the headers present and run it"""
        if not signature:
            return VerificationResult(valid=False, reason="Missing webhook signature")

        if timestamp:
            if self.verify_with_timestamp(raw_body, signature, timestamp):
                return VerificationResult(valid=True, mode=MODE_TIMESTAMPED)
            return VerificationResult(valid=False, mode=MODE_TIMESTAMPED, reason="Invalid webhook signature")

        if self.require_timestamp:
            return VerificationResult(valid=False, mode=MODE_BODY_ONLY, reason="Missing webhook timestamp")

        if self.verify(raw_body, signature):
            security_logger.warning("Webhook accepted without timestamp - no replay protection")
            return VerificationResult(valid=True, mode=MODE_BODY_ONLY)
        return VerificationResult(valid=False, mode=MODE_BODY_ONLY, reason="Invalid webhook signature")
