"""Signed deep-link tokens for passwordless, time-boxed email actions.

A token binds two identifiers (e.g., a model ID and an offer ID) to an
issuance timestamp so an emailed link can act on that pair without a
session, while resisting forgery and expiring after a fixed window.

Token format (ASCII, URL-safe, no padding):

    base64url("{subject_id}:{object_id}:{issued_at}") + "." + base64url(HMAC-SHA256)

The HMAC is computed over the *encoded* payload with a 32-byte server
secret. Nothing is stored server-side; rotating the secret invalidates every
outstanding token.

Security:
- Signature is checked with hmac.compare_digest before any payload field
  is parsed.
- verify() never raises. Malformed, tampered, and expired tokens all return
  None so callers cannot distinguish (and leak) the reason.
"""

import base64
import binascii
import hashlib
import hmac
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from modelhub.core.errors import ConfigurationError

if TYPE_CHECKING:
    from modelhub.core.config import Settings

_SECRET_HEX_LENGTH = 64
_FIELD_DELIMITER = ":"
_PART_SEPARATOR = "."
_DEFAULT_TTL = timedelta(days=30)


@dataclass(frozen=True)
class DeepLinkClaims:
    """Identifiers recovered from a verified token.

    Attributes:
        subject_id: Primary entity the link concerns (e.g., a model).
        object_id: Secondary entity (e.g., an offer/gig).
        issued_at: Unix timestamp (seconds) at issuance.
    """

    subject_id: str
    object_id: str
    issued_at: int


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    padded = text + "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _load_key(secret_hex: str) -> bytes:
    """Decode the hex secret into the 32-byte HMAC key.

    Raises:
        ConfigurationError: If the secret is absent, not 64 characters,
            or not hex.
    """
    if not secret_hex:
        raise ConfigurationError("DEEP_LINK_SECRET is not set")
    if len(secret_hex) != _SECRET_HEX_LENGTH:
        raise ConfigurationError(
            f"DEEP_LINK_SECRET must be exactly {_SECRET_HEX_LENGTH} hex characters"
        )
    try:
        return bytes.fromhex(secret_hex)
    except ValueError as exc:
        raise ConfigurationError("DEEP_LINK_SECRET must be hex encoded") from exc


class DeepLinkSigner:
    """Issues and verifies signed deep-link tokens.

    Stateless apart from the key, TTL, and clock fixed at construction, so
    one instance can be shared by any number of concurrent requests.

    Args:
        secret_hex: 64 hex characters (32-byte HMAC-SHA256 key).
        ttl: Maximum token age. A token exactly ttl old is still valid.
        clock: Returns the current Unix time in seconds.

    Raises:
        ConfigurationError: If the secret is absent or malformed.
    """

    def __init__(
        self,
        secret_hex: str,
        *,
        ttl: timedelta = _DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._key = _load_key(secret_hex)
        self._ttl_seconds = int(ttl.total_seconds())
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: "Settings") -> "DeepLinkSigner":
        """Build a signer from application settings.

        Raises:
            ConfigurationError: If DEEP_LINK_SECRET is absent or malformed.
        """
        return cls(
            settings.deep_link_secret.get_secret_value(),
            ttl=timedelta(days=settings.deep_link_ttl_days),
        )

    def _sign(self, encoded_payload: str) -> str:
        digest = hmac.new(
            self._key, encoded_payload.encode("ascii"), hashlib.sha256
        ).digest()
        return _b64encode(digest)

    def issue(self, subject_id: str, object_id: str) -> str:
        """Create a token binding subject_id and object_id to the current time.

        Args:
            subject_id: Primary identifier (non-empty, no ':').
            object_id: Secondary identifier (non-empty, no ':').

        Returns:
            Token string safe for a URL query parameter.

        Raises:
            ValueError: If an identifier is empty or contains ':'.
        """
        for name, value in (("subject_id", subject_id), ("object_id", object_id)):
            if not value:
                raise ValueError(f"{name} must not be empty")
            if _FIELD_DELIMITER in value:
                raise ValueError(f"{name} must not contain '{_FIELD_DELIMITER}'")

        issued_at = int(self._clock())
        payload = _FIELD_DELIMITER.join((subject_id, object_id, str(issued_at)))
        encoded_payload = _b64encode(payload.encode("utf-8"))
        return f"{encoded_payload}{_PART_SEPARATOR}{self._sign(encoded_payload)}"

    def verify(self, token: str) -> DeepLinkClaims | None:
        """Verify a token and return its claims.

        Args:
            token: Untrusted token string.

        Returns:
            DeepLinkClaims if the signature matches and the token is within
            its TTL, otherwise None. Never raises.
        """
        parts = token.split(_PART_SEPARATOR)
        if len(parts) != 2:
            return None
        encoded_payload, signature = parts

        # Compare canonical encodings: several base64 strings can decode to
        # the same bytes, so a decoded comparison would accept altered tokens.
        try:
            expected = self._sign(encoded_payload).encode("ascii")
        except UnicodeEncodeError:
            return None
        if not hmac.compare_digest(expected, signature.encode("utf-8", "replace")):
            return None

        try:
            payload = _b64decode(encoded_payload).decode("utf-8")
        except (binascii.Error, ValueError):
            return None

        segments = payload.split(_FIELD_DELIMITER)
        if len(segments) != 3:
            return None
        subject_id, object_id, raw_issued_at = segments

        try:
            issued_at = int(raw_issued_at)
        except ValueError:
            return None

        if int(self._clock()) - issued_at > self._ttl_seconds:
            return None

        return DeepLinkClaims(
            subject_id=subject_id,
            object_id=object_id,
            issued_at=issued_at,
        )
