# app/core/roles.py

import enum


class UserRole(str, enum.Enum):
    SUPER_ADMIN = "SuperAdmin"  # single global operator, never tenant-scoped
    ADMIN = "Admin"             # tenant staff, always carries a company id
    USER = "User"               # customer (self-registered)


STAFF_ROLES = frozenset({UserRole.SUPER_ADMIN, UserRole.ADMIN})


def parse_role(value: str | None) -> UserRole:
    """
    Strict parse of a stored/claimed role string. Unknown values raise ValueError.
    """
    v = (value or "").strip()
    for role in UserRole:
        if role.value.lower() == v.lower():
            return role
    raise ValueError(f"Unknown role: {value!r}")
