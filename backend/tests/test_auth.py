# tests/test_auth.py
from __future__ import annotations

import uuid

import pytest
from sqlalchemy import select

from app.core.roles import UserRole
from app.core.security import verify_password
from app.models.user import User

REGISTER_PAYLOAD = {
    "first_name": "Grace",
    "last_name": "Hopper",
    "email": "Grace.Hopper@Example.com",
    "password": "cobol-rocks",
    "phone_number": "+254712345678",
    "city": "Nairobi",
}


async def register(client, **overrides):
    payload = {**REGISTER_PAYLOAD, **overrides}
    return await client.post("/api/v1/auth/register", json=payload)


async def load_user(sessionmaker, email: str) -> User:
    async with sessionmaker() as s:
        return (await s.execute(select(User).where(User.email == email))).scalar_one()


@pytest.mark.asyncio
async def test_register_returns_credential_and_persists_user(client, sessionmaker, token_issuer):
    r = await register(client)

    assert r.status_code == 200
    body = r.json()
    assert body["email"] == "grace.hopper@example.com"
    assert body["full_name"] == "Grace Hopper"
    assert body["role"] == "User"
    assert body["company_id"] is None
    assert body["expiration"]

    ctx = token_issuer.authenticate(body["token"])
    assert str(ctx.user_id) == body["user_id"]
    assert ctx.role == UserRole.USER

    user = await load_user(sessionmaker, "grace.hopper@example.com")
    assert user.is_active is True
    assert user.password_hash != REGISTER_PAYLOAD["password"]
    assert verify_password(REGISTER_PAYLOAD["password"], user.password_hash, user.password_salt)
    assert not verify_password("not-the-password", user.password_hash, user.password_salt)


@pytest.mark.asyncio
@pytest.mark.parametrize("role", ["Admin", "SuperAdmin", "admin"])
async def test_self_registration_always_yields_user_role(client, sessionmaker, token_issuer, role):
    r = await register(client, role=role)

    assert r.status_code == 200
    assert r.json()["role"] == "User"
    assert token_issuer.authenticate(r.json()["token"]).role == UserRole.USER

    user = await load_user(sessionmaker, "grace.hopper@example.com")
    assert user.role == "User"
    assert user.company_id is None


@pytest.mark.asyncio
async def test_duplicate_email_is_rejected_case_insensitively(client):
    first = await register(client)
    assert first.status_code == 200

    r = await register(client, email="GRACE.HOPPER@example.COM", first_name="Other")

    assert r.status_code == 409
    detail = r.json()["detail"]
    assert detail["code"] == "duplicate_identity"
    assert detail["message"] == "A user with this email already exists."


@pytest.mark.asyncio
async def test_invalid_email_is_rejected(client):
    r = await register(client, email="not-an-email")
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_short_password_is_rejected(client):
    r = await register(client, password="123")
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_login_succeeds_with_case_insensitive_email(client, make_user, token_issuer):
    user = await make_user(email="ada@example.com", password="analytical")

    r = await client.post("/api/v1/auth/login", json={"email": "ADA@Example.com", "password": "analytical"})

    assert r.status_code == 200
    body = r.json()
    assert body["user_id"] == str(user.id)
    assert token_issuer.authenticate(body["token"]).user_id == user.id


@pytest.mark.asyncio
async def test_unknown_email_and_wrong_password_are_indistinguishable(client, make_user):
    await make_user(email="ada@example.com", password="analytical")

    wrong_pw = await client.post("/api/v1/auth/login", json={"email": "ada@example.com", "password": "nope"})
    unknown = await client.post("/api/v1/auth/login", json={"email": "nobody@example.com", "password": "nope"})

    assert wrong_pw.status_code == unknown.status_code == 401
    assert wrong_pw.json() == unknown.json()
    assert wrong_pw.json()["detail"]["code"] == "invalid_credentials"


@pytest.mark.asyncio
async def test_inactive_user_cannot_login(client, make_user):
    await make_user(email="gone@example.com", password="analytical", is_active=False)

    r = await client.post("/api/v1/auth/login", json={"email": "gone@example.com", "password": "analytical"})

    assert r.status_code == 401
    assert r.json()["detail"]["code"] == "invalid_credentials"


@pytest.mark.asyncio
async def test_admin_login_token_carries_tenant(client, make_user, company, token_issuer):
    await make_user(email="boss@example.com", role=UserRole.ADMIN, company_id=company.id, password="tenant-pw")

    r = await client.post("/api/v1/auth/login", json={"email": "boss@example.com", "password": "tenant-pw"})

    assert r.status_code == 200
    body = r.json()
    assert body["role"] == "Admin"
    assert body["company_id"] == str(company.id)
    assert body["company_name"] == company.name

    ctx = token_issuer.authenticate(body["token"])
    assert ctx.tenant_id == company.id


@pytest.mark.asyncio
async def test_me_requires_a_valid_token(client, make_user, auth_headers):
    user = await make_user(email="ada@example.com")

    ok = await client.get("/api/v1/auth/me", headers=auth_headers(user))
    assert ok.status_code == 200
    assert ok.json()["id"] == str(user.id)
    assert ok.json()["role"] == "User"

    missing = await client.get("/api/v1/auth/me")
    assert missing.status_code == 401
    assert missing.json()["detail"]["code"] == "unauthenticated"

    garbage = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not.a.token"})
    assert garbage.status_code == 401


@pytest.mark.asyncio
async def test_me_rejects_token_for_deleted_user(client, token_issuer):
    issued = token_issuer.issue(user_id=uuid.uuid4(), role=UserRole.USER)

    r = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {issued.access_token}"})

    assert r.status_code == 401


@pytest.mark.asyncio
async def test_super_admin_bootstrap_only_on_empty_table(sessionmaker):
    from app.crud.users import UserRepository
    from app.services.auth_service import ensure_super_admin

    async with sessionmaker() as s:
        repo = UserRepository(s)
        created = await ensure_super_admin(repo, email="Root@Example.com", password="bootstrap-pw", user_count=await repo.count())

    assert created is not None
    assert created.role == "SuperAdmin"
    assert created.company_id is None
    assert created.email == "root@example.com"

    async with sessionmaker() as s:
        repo = UserRepository(s)
        again = await ensure_super_admin(repo, email="other@example.com", password="x" * 8, user_count=await repo.count())

    assert again is None


@pytest.mark.asyncio
async def test_init_db_seeds_configured_super_admin_once(sessionmaker):
    from app.core.config import Settings
    from app.crud.users import UserRepository
    from app.db.init_db import init_db

    config = Settings(SUPERADMIN_EMAIL="Owner@Example.com", SUPERADMIN_PASSWORD="bootstrap-pw")

    await init_db(config, sessionmaker)
    await init_db(config, sessionmaker)

    async with sessionmaker() as s:
        assert await UserRepository(s).count() == 1
    root = await load_user(sessionmaker, "owner@example.com")
    assert root.role == UserRole.SUPER_ADMIN.value
    assert verify_password("bootstrap-pw", root.password_hash, root.password_salt)


@pytest.mark.asyncio
async def test_user_count_failure_surfaces_as_store_unavailable(sessionmaker, monkeypatch):
    from sqlalchemy.exc import OperationalError

    from app.core.errors import StoreUnavailable
    from app.crud.users import UserRepository

    async with sessionmaker() as s:
        async def broken_execute(*args, **kwargs):
            raise OperationalError("SELECT count(users.id)", {}, Exception("database is locked"))

        monkeypatch.setattr(s, "execute", broken_execute)

        with pytest.raises(StoreUnavailable):
            await UserRepository(s).count()
