"""HMAC-SHA256 signed OAuth state tokens.

Each authorization redirect carries its own signed state: the provider
echoes it back in the callback and the browser presents the copy stored
in a short-lived cookie. Both must match and the signature must verify,
so concurrent attempts never share mutable server state.

Token format: base64url(json_payload_bytes).base64url(hmac_sha256_signature)
"""

import base64
import binascii
import hashlib
import hmac
import json
import math
import secrets
import time
from dataclasses import asdict, dataclass

import structlog

from shared.auth.models import AuthIntent, Provider

logger = structlog.get_logger()

_TOKEN_PARTS = 2  # base64url(payload).base64url(signature)

STATE_TTL_SECONDS = 600  # 10 minutes to finish the provider round trip
CLOCK_SKEW_SECONDS = 60
NONCE_BYTES = 32


@dataclass
class OAuthState:
    """Payload carried inside a signed OAuth state token."""

    provider: str
    intent: str
    nonce: str
    issued_at: float
    expires_at: float


def create_signed_state(provider: Provider, intent: AuthIntent, secret: str) -> str:
    """Create and sign a state for one authorization attempt."""
    now = time.time()
    state = OAuthState(
        provider=provider.value,
        intent=intent.value,
        nonce=secrets.token_urlsafe(NONCE_BYTES),
        issued_at=now,
        expires_at=now + STATE_TTL_SECONDS,
    )
    return sign_state(state, secret)


def sign_state(state: OAuthState, secret: str) -> str:
    """Serialize state to JSON, compute HMAC-SHA256, return base64url(payload).base64url(sig)."""
    payload_bytes = json.dumps(asdict(state), sort_keys=True).encode()
    sig = hmac.new(secret.encode(), payload_bytes, hashlib.sha256).digest()
    payload_b64 = base64.urlsafe_b64encode(payload_bytes).decode()
    sig_b64 = base64.urlsafe_b64encode(sig).decode()
    return f"{payload_b64}.{sig_b64}"


def verify_state(token: str, secret: str) -> OAuthState | None:
    """Verify HMAC signature and expiry. Returns OAuthState or None on any failure."""
    parts = token.split(".")
    if len(parts) != _TOKEN_PARTS:
        return None

    try:
        payload_bytes = base64.urlsafe_b64decode(parts[0])
        provided_sig = base64.urlsafe_b64decode(parts[1])
    except (ValueError, binascii.Error):
        return None

    expected_sig = hmac.new(secret.encode(), payload_bytes, hashlib.sha256).digest()
    if not hmac.compare_digest(provided_sig, expected_sig):
        logger.debug("oauth state signature mismatch")
        return None

    try:
        data = json.loads(payload_bytes)
        state = OAuthState(**data)
    except (json.JSONDecodeError, TypeError, KeyError):
        logger.debug("oauth state malformed payload")
        return None

    if state.provider not in {p.value for p in Provider} or state.intent not in {i.value for i in AuthIntent}:
        logger.debug("oauth state unknown provider or intent")
        return None

    if not _validate_state_timestamps(state):
        return None

    return state


def _is_finite_number(value: object) -> bool:
    """Check that a value is a finite int or float (excluding bool)."""
    if isinstance(value, bool):
        return False
    if not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _validate_state_timestamps(state: OAuthState) -> bool:
    if not _is_finite_number(state.issued_at) or not _is_finite_number(state.expires_at):
        logger.debug("oauth state non-finite timestamp")
        return False

    now = time.time()

    if state.issued_at > now + CLOCK_SKEW_SECONDS:
        logger.debug("oauth state issued in the future")
        return False

    if state.expires_at <= state.issued_at:
        logger.debug("oauth state expires_at <= issued_at")
        return False

    if state.expires_at - state.issued_at > STATE_TTL_SECONDS + CLOCK_SKEW_SECONDS:
        logger.debug("oauth state lifetime too long")
        return False

    if now > state.expires_at:
        logger.debug("oauth state expired")
        return False

    return True
