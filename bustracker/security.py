# bustracker/security.py - signed tokens and password hashing
import base64
import hashlib
import hmac
import json
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .errors import InvalidCredential

TOKEN_ALGORITHM = "HS256"
PBKDF2_ITERATIONS = 100000


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def _b64d(s: str) -> bytes:
    s += "=" * (-len(s) % 4)
    return base64.urlsafe_b64decode(s)


def utcnow() -> datetime:
    """Naive UTC, matching what SQLite DateTime columns hand back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TokenCodec:
    """
    Issues and verifies HS256 tokens binding a caller to a user id.

    The secret, lifetime and clock are fixed at construction; verify() is a
    pure function of those and the token.
    """

    def __init__(self, secret: str, expiry_hours: float = 24,
                 clock: Optional[Callable[[], datetime]] = None):
        if not secret:
            raise ValueError("token secret must not be empty")
        if expiry_hours <= 0:
            raise ValueError("token expiry must be > 0")
        self._secret = secret.encode()
        self.expiry = timedelta(hours=expiry_hours)
        self._clock = clock or utcnow

    def _sign(self, header: str, body: str) -> str:
        return _b64(hmac.new(self._secret, f"{header}.{body}".encode(), hashlib.sha256).digest())

    def issue(self, user_id: str) -> str:
        header = _b64(json.dumps({"alg": TOKEN_ALGORITHM, "typ": "JWT"}).encode())
        payload = {"sub": user_id, "exp": (self._clock() + self.expiry).isoformat()}
        body = _b64(json.dumps(payload).encode())
        return f"{header}.{body}.{self._sign(header, body)}"

    def verify(self, token: str) -> str:
        """Return the user id bound to ``token`` or raise InvalidCredential."""
        try:
            parts = token.split(".")
            if len(parts) != 3:
                raise ValueError("bad token")
            header, body, sig = parts
            if not hmac.compare_digest(sig, self._sign(header, body)):
                raise ValueError("invalid signature")
            payload = json.loads(_b64d(body))
            if datetime.fromisoformat(payload["exp"]) < self._clock():
                raise ValueError("expired")
            user_id = payload["sub"]
            if not isinstance(user_id, str) or not user_id:
                raise ValueError("missing subject")
            return user_id
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise InvalidCredential("Invalid or expired token", reason=str(e))


def hash_password(password: str) -> str:
    salt = secrets.token_hex(16)
    h = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS)
    return f"{salt}:{h.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        salt, h = stored.split(":")
    except (ValueError, AttributeError):
        return False
    candidate = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS)
    return hmac.compare_digest(h, candidate.hex())
