# tests/test_security.py
from __future__ import annotations

import base64
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from app.core.errors import Unauthenticated
from app.core.roles import UserRole
from app.core.security import SALT_BYTES, TokenIssuer, hash_password, verify_password


def make_issuer(**overrides) -> TokenIssuer:
    params = dict(
        secret="unit-test-secret-with-enough-length-0123456789",
        issuer="marketplace-api",
        audience="marketplace-clients",
        ttl=timedelta(hours=3),
    )
    params.update(overrides)
    return TokenIssuer(**params)


# ---------------------------------------------------------
# Password hashing
# ---------------------------------------------------------
def test_stored_hash_rederives_with_stored_salt():
    hashed = hash_password("correct horse battery staple")

    assert verify_password("correct horse battery staple", hashed.hash, hashed.salt)
    assert "correct horse" not in hashed.hash


def test_different_password_never_matches():
    hashed = hash_password("s3cret!")

    assert not verify_password("s3cret", hashed.hash, hashed.salt)
    assert not verify_password("S3CRET!", hashed.hash, hashed.salt)
    assert not verify_password("", hashed.hash, hashed.salt)


def test_salt_is_random_per_hash():
    a = hash_password("same-password")
    b = hash_password("same-password")

    assert a.salt != b.salt
    assert a.hash != b.hash
    assert len(base64.b64decode(a.salt)) == SALT_BYTES
    # HMAC-SHA512 digest
    assert len(base64.b64decode(a.hash)) == 64


def test_hash_does_not_verify_under_another_users_salt():
    a = hash_password("pw-one")
    b = hash_password("pw-one")

    assert not verify_password("pw-one", a.hash, b.salt)


def test_corrupt_stored_values_do_not_verify():
    hashed = hash_password("pw")

    assert not verify_password("pw", "not base64!!", hashed.salt)
    assert not verify_password("pw", hashed.hash, "%%%")


# ---------------------------------------------------------
# Tokens
# ---------------------------------------------------------
def test_issue_and_authenticate_carries_role_and_tenant():
    issuer = make_issuer()
    user_id, tenant_id = uuid.uuid4(), uuid.uuid4()

    issued = issuer.issue(user_id=user_id, role=UserRole.ADMIN, tenant_id=tenant_id)
    ctx = issuer.authenticate(issued.access_token)

    assert ctx.user_id == user_id
    assert ctx.role == UserRole.ADMIN
    assert ctx.tenant_id == tenant_id
    assert issued.expires_at > datetime.now(timezone.utc) + timedelta(hours=2, minutes=59)


def test_token_claims_include_issuer_audience_and_expiry():
    issuer = make_issuer()
    issued = issuer.issue(user_id=uuid.uuid4(), role=UserRole.USER)

    claims = jwt.get_unverified_claims(issued.access_token)

    assert claims["iss"] == "marketplace-api"
    assert claims["aud"] == "marketplace-clients"
    assert claims["role"] == "User"
    assert "tenant_id" not in claims
    assert claims["exp"] == int(issued.expires_at.timestamp())


def test_customer_token_has_no_tenant():
    issuer = make_issuer()
    ctx = issuer.authenticate(issuer.issue(user_id=uuid.uuid4(), role=UserRole.USER).access_token)

    assert ctx.tenant_id is None
    assert not ctx.is_admin and not ctx.is_super_admin


def test_expired_token_is_rejected():
    issuer = make_issuer()
    issued = issuer.issue(
        user_id=uuid.uuid4(),
        role=UserRole.USER,
        now=datetime.now(timezone.utc) - timedelta(hours=4),
    )

    with pytest.raises(Unauthenticated):
        issuer.authenticate(issued.access_token)


def test_token_signed_with_another_key_is_rejected():
    other = make_issuer(secret="a-completely-different-signing-secret-000000")
    token = other.issue(user_id=uuid.uuid4(), role=UserRole.USER).access_token

    with pytest.raises(Unauthenticated):
        make_issuer().authenticate(token)


@pytest.mark.parametrize(
    "overrides",
    [
        {"issuer": "someone-else"},
        {"audience": "another-app"},
    ],
)
def test_wrong_issuer_or_audience_is_rejected(overrides):
    foreign = make_issuer(**overrides)
    token = foreign.issue(user_id=uuid.uuid4(), role=UserRole.USER).access_token

    with pytest.raises(Unauthenticated):
        make_issuer().authenticate(token)


@pytest.mark.parametrize("token", ["", "   ", "garbage", "a.b.c"])
def test_malformed_token_is_rejected(token):
    with pytest.raises(Unauthenticated):
        make_issuer().authenticate(token)


def test_token_with_unknown_role_is_rejected():
    issuer = make_issuer()
    expires = datetime.now(timezone.utc) + timedelta(hours=1)
    token = issuer.sign({"sub": str(uuid.uuid4()), "role": "Root"}, expires)

    with pytest.raises(Unauthenticated):
        issuer.authenticate(token)


def test_bearer_prefix_and_quotes_are_tolerated():
    issuer = make_issuer()
    token = issuer.issue(user_id=uuid.uuid4(), role=UserRole.USER).access_token

    assert issuer.authenticate(f'"Bearer {token}"').role == UserRole.USER


def test_empty_secret_is_refused():
    with pytest.raises(ValueError):
        make_issuer(secret="")
