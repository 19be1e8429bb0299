from __future__ import annotations

from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import PermissionDenied, Unauthenticated
from app.core.roles import UserRole
from app.core.security import AuthContext, TokenIssuer, bearer_scheme
from app.crud.orders import OrderRepository
from app.crud.users import UserRepository
from app.db.session import get_db
from app.services.auth_service import AuthService


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


async def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> AuthContext:
    """
    Signature, expiry, issuer and audience are all checked here, once, for every
    protected endpoint.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Not authenticated")
    return tokens.authenticate(credentials.credentials)


def require_roles(*allowed_roles: UserRole) -> Callable:
    """
    Enforce ctx.role in allowed_roles. Admin contexts must carry a tenant claim.
    """
    allowed = frozenset(allowed_roles)
    if not allowed:
        raise ValueError("require_roles() needs at least one role")

    async def _checker(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if ctx.role not in allowed:
            raise PermissionDenied(
                f"Insufficient role: {ctx.role.value}. Allowed: {', '.join(sorted(r.value for r in allowed))}"
            )
        if ctx.role == UserRole.ADMIN and ctx.tenant_id is None:
            raise PermissionDenied("Admin token carries no tenant.")
        return ctx

    return _checker


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> AuthService:
    return AuthService(UserRepository(db), tokens)


def get_order_store(db: AsyncSession = Depends(get_db)) -> OrderRepository:
    return OrderRepository(db)
