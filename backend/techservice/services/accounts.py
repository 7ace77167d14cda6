"""Admin and staff accounts: login, staff onboarding, credentials."""
from __future__ import annotations
import logging
import random
from typing import Any, Dict, Optional
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from techservice.errors import AuthenticationFailed, NotFoundError, StoreFailure, ValidationError
from techservice.models.accounts import AdminUser, Technician
from techservice.utils.clock import utcnow
from techservice.utils.validation import optional_text, require_text, validate_password

logger = logging.getLogger(__name__)

USER_TYPES = ('admin', 'staff')


def admin_profile(user: AdminUser) -> Dict[str, Any]:
    return {'id': user.id, 'email': user.email, 'name': user.name, 'type': 'admin'}


def staff_profile(tech: Technician) -> Dict[str, Any]:
    return {
        'id': tech.id,
        'email': tech.email,
        'username': tech.username,
        'name': tech.name,
        'specialty': tech.specialty,
        'avatar_color': tech.avatar_color,
        'type': 'staff',
    }


def technician_json(tech: Technician) -> Dict[str, Any]:
    return {
        'id': tech.id,
        'name': tech.name,
        'email': tech.email,
        'specialty': tech.specialty,
        'avatar_color': tech.avatar_color,
        'active': tech.active,
        'username': tech.username,
        'has_password': bool(tech.password_hash),
    }


def authenticate(session, credential: Optional[str], password: Optional[str], user_type: Optional[str]) -> Dict[str, Any]:
    """Verify credentials and return the minimal identity profile."""
    if user_type not in USER_TYPES:
        raise ValidationError(fields={'userType': 'must be admin or staff'})
    if not password:
        raise ValidationError(fields={'password': 'required'})
    if not credential:
        raise ValidationError(fields={'credential': 'email is required' if user_type == 'admin' else 'username is required'})
    if user_type == 'admin':
        user = session.execute(select(AdminUser).where(AdminUser.email == credential)).scalar_one_or_none()
        if not user or not user.verify_password(password):
            raise AuthenticationFailed('Invalid email or password')
        user.last_login = utcnow()
        session.commit()
        return admin_profile(user)
    tech = session.execute(select(Technician).where(Technician.username == credential)).scalar_one_or_none()
    if not tech or not tech.active or not tech.verify_password(password):
        raise AuthenticationFailed('Invalid username or password')
    return staff_profile(tech)


def _get_technician(session, technician_id: str) -> Technician:
    tech = session.get(Technician, technician_id)
    if tech is None:
        raise NotFoundError('Technician not found')
    return tech


def set_password(session, technician_id: Optional[str], password: Optional[str], min_length: int = 8):
    if not technician_id:
        raise ValidationError(fields={'technicianId': 'required'})
    validate_password(password, min_length)
    tech = _get_technician(session, technician_id)
    tech.set_password(password)
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise StoreFailure('Failed to set password') from e
    return tech


def _username_taken(session, username: str, exclude_id: Optional[str] = None) -> bool:
    q = select(Technician).where(Technician.username == username)
    existing = session.execute(q).scalar_one_or_none()
    return existing is not None and existing.id != exclude_id


def create_technician(session, data: Dict[str, Any], min_length: int = 8) -> Technician:
    name = require_text(data.get('name'), 'name')
    username = require_text(data.get('username'), 'username')
    password = validate_password(data.get('password'), min_length)
    if _username_taken(session, username):
        raise ValidationError(fields={'username': 'already in use'})
    tech = Technician(
        name=name,
        specialty=optional_text(data.get('specialty')) or '',
        email=optional_text(data.get('email')),
        username=username,
        avatar_color=random.choice(Technician.AVATAR_COLORS),
        active=True,
    )
    tech.set_password(password)
    session.add(tech)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise ValidationError(fields={'username': 'already in use'}) from e
    logger.info('technician %s created', tech.id)
    return tech


def set_credentials(session, technician_id: str, username: Any, password: Any = None, min_length: int = 8) -> Technician:
    tech = _get_technician(session, technician_id)
    username = require_text(username, 'username')
    if password:
        validate_password(password, min_length)
    if _username_taken(session, username, exclude_id=tech.id):
        raise ValidationError(fields={'username': 'already in use'})
    tech.username = username
    if password:
        tech.set_password(password)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise ValidationError(fields={'username': 'already in use'}) from e
    return tech


def list_technicians(session, active_only: bool = False):
    q = select(Technician).order_by(Technician.name.asc())
    if active_only:
        q = q.where(Technician.active == True)  # noqa: E712
    return session.execute(q).scalars().all()


def delete_technician(session, technician_id: str):
    tech = _get_technician(session, technician_id)
    session.delete(tech)
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise StoreFailure('Failed to delete technician') from e


__all__ = [
    'authenticate', 'set_password', 'create_technician', 'set_credentials', 'list_technicians',
    'delete_technician', 'technician_json', 'admin_profile', 'staff_profile', 'USER_TYPES',
]
