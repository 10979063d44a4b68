"""
Caller identity.

Sessions and tokens are handled by the authenticating gateway in front of
this service; it forwards who the caller is in the ``X-User-Id`` and
``X-User-Role`` headers. Requests without them are anonymous.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header

from errors import AuthorizationError

CUSTOMER = "customer"
ADMIN = "admin"


@dataclass(frozen=True)
class Caller:
    id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN


def get_caller(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> Optional[Caller]:
    if not x_user_id or not x_user_role:
        return None
    role = x_user_role.strip().lower()
    if role not in (CUSTOMER, ADMIN):
        return None
    return Caller(id=x_user_id.strip(), role=role)


def require_caller(caller: Optional[Caller] = Depends(get_caller)) -> Caller:
    if caller is None:
        raise AuthorizationError()
    return caller


def require_customer(caller: Caller = Depends(require_caller)) -> Caller:
    if caller.role != CUSTOMER:
        raise AuthorizationError()
    return caller


def require_admin(caller: Caller = Depends(require_caller)) -> Caller:
    if not caller.is_admin:
        raise AuthorizationError()
    return caller
