from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi.security import HTTPBearer
from jose import JWTError, jwt

from app.core.config import Settings
from app.core.errors import Unauthenticated
from app.core.roles import UserRole, parse_role

logger = logging.getLogger(__name__)

# auto_error=False so a missing header goes through Unauthenticated (401) like any other bad token
bearer_scheme = HTTPBearer(auto_error=False)

SALT_BYTES = 128  # HMAC-SHA512 block size


# ---------------------------------------------------------
# Password hashing (HMAC-SHA512, per-user random key)
# ---------------------------------------------------------
@dataclass(frozen=True)
class PasswordHash:
    hash: str  # base64
    salt: str  # base64


def _hmac_digest(salt: bytes, password: str) -> bytes:
    return hmac.new(salt, password.encode("utf-8"), hashlib.sha512).digest()


def hash_password(password: str) -> PasswordHash:
    salt = secrets.token_bytes(SALT_BYTES)
    digest = _hmac_digest(salt, password)
    return PasswordHash(
        hash=base64.b64encode(digest).decode("ascii"),
        salt=base64.b64encode(salt).decode("ascii"),
    )


def verify_password(password: str, stored_hash: str, stored_salt: str) -> bool:
    try:
        salt = base64.b64decode(stored_salt, validate=True)
        expected = base64.b64decode(stored_hash, validate=True)
    except ValueError:
        return False
    return hmac.compare_digest(_hmac_digest(salt, password), expected)


def burn_password_check(password: str) -> None:
    """
    Spend the same HMAC work as a real verification when there is no user,
    so response time does not reveal whether an email is registered.
    """
    hmac.compare_digest(_hmac_digest(secrets.token_bytes(SALT_BYTES), password), bytes(64))


# ---------------------------------------------------------
# Authenticated context
# ---------------------------------------------------------
@dataclass(frozen=True)
class AuthContext:
    user_id: uuid.UUID
    role: UserRole
    tenant_id: Optional[uuid.UUID] = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


# ---------------------------------------------------------
# Token issuance / validation
# ---------------------------------------------------------
def _normalize_token(token: str) -> str:
    """
    Make token decoding resilient to common Swagger / copy-paste issues:
    - Leading/trailing whitespace/newlines
    - Surrounding quotes
    - Accidentally including the 'Bearer ' prefix in the token field
    """
    if token is None:
        return ""

    t = token.strip()

    if (t.startswith('"') and t.endswith('"')) or (t.startswith("'") and t.endswith("'")):
        t = t[1:-1].strip()

    if t.lower().startswith("bearer "):
        t = t[7:].strip()

    return t


@dataclass(frozen=True)
class IssuedToken:
    access_token: str
    expires_at: datetime


class TokenIssuer:
    """
    Signs and verifies access tokens with one process-wide secret.

    Built once from Settings when the application is created; rotating the
    secret invalidates every outstanding token.
    """

    def __init__(
        self,
        *,
        secret: str,
        issuer: str,
        audience: str,
        ttl: timedelta,
        algorithm: str = "HS256",
    ) -> None:
        if not secret:
            raise ValueError("Token signing secret must not be empty.")
        self._secret = secret
        self.issuer = issuer
        self.audience = audience
        self.ttl = ttl
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            secret=settings.JWT_SECRET,
            issuer=settings.JWT_ISSUER,
            audience=settings.JWT_AUDIENCE,
            ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            algorithm=settings.JWT_ALGORITHM,
        )

    def sign(self, claims: dict[str, Any], expires_at: datetime) -> str:
        now = datetime.now(timezone.utc)
        # Use numeric timestamps for maximum compatibility
        to_encode: dict[str, Any] = {
            **claims,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return jwt.encode(to_encode, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> dict[str, Any]:
        token = _normalize_token(token)
        if not token:
            raise Unauthenticated()

        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"require_sub": True, "require_exp": True, "require_iss": True, "require_aud": True},
            )
        except JWTError as exc:
            # Includes expired signature, bad format, bad signature, wrong issuer/audience, etc.
            logger.info("Rejected access token: %s", exc.__class__.__name__)
            raise Unauthenticated()

    def issue(
        self,
        *,
        user_id: uuid.UUID,
        role: UserRole,
        tenant_id: Optional[uuid.UUID] = None,
        now: Optional[datetime] = None,
    ) -> IssuedToken:
        expires_at = (now or datetime.now(timezone.utc)) + self.ttl
        claims: dict[str, Any] = {"sub": str(user_id), "role": role.value}
        if tenant_id is not None:
            claims["tenant_id"] = str(tenant_id)
        return IssuedToken(access_token=self.sign(claims, expires_at), expires_at=expires_at)

    def authenticate(self, token: str) -> AuthContext:
        """
        Verify a bearer token and turn its claims into an AuthContext.
        """
        payload = self.verify(token)
        try:
            user_id = uuid.UUID(str(payload.get("sub")))
            role = parse_role(payload.get("role"))
            raw_tenant = payload.get("tenant_id")
            tenant_id = uuid.UUID(str(raw_tenant)) if raw_tenant else None
        except ValueError:
            raise Unauthenticated("Invalid token claims")

        return AuthContext(user_id=user_id, role=role, tenant_id=tenant_id)
