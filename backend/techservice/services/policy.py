from __future__ import annotations
from typing import Set
from flask_jwt_extended import get_jwt, get_jwt_identity
from techservice.errors import ServiceError


class Forbidden(ServiceError):
    code = 403
    reason = 'forbidden'


def current_permissions() -> Set[str]:
    claims = get_jwt()
    return set(claims.get('perms', []))


def has_permissions(*codes: str) -> bool:
    perms = current_permissions()
    return all(c in perms for c in codes)


def current_user_type() -> str:
    return get_jwt().get('user_type', '')


def current_actor_name() -> str:
    return get_jwt().get('name') or 'Staff'


def current_staff_id():
    """Token identity when the caller is a staff member, else None."""
    if current_user_type() != 'staff':
        return None
    return get_jwt_identity()


def assert_self_or_admin(staff_id: str):
    """Staff may only read their own figures; admins may read anyone's."""
    if current_user_type() == 'admin':
        return
    if get_jwt_identity() != staff_id:
        raise Forbidden('Staff may only view their own analytics')
