"""Test seeding utilities to reduce duplication.

Helpers insert rows straight through the ORM so tests can control timestamps, owners
and amounts that the API would otherwise set itself.
"""
import uuid
from datetime import timedelta
from typing import Optional
from techservice import get_db
from techservice.models.accounts import AdminUser, Technician
from techservice.models.ticket import Device, Ticket, TicketNote
from techservice.utils.clock import utcnow

DEFAULT_PASSWORD = 'secret-pw-1'


def unique(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def ensure_admin(email: str, name: str = 'Admin', password: str = DEFAULT_PASSWORD) -> AdminUser:
    session = get_db()
    user = session.query(AdminUser).filter_by(email=email).one_or_none()
    if not user:
        user = AdminUser(email=email, name=name, password_hash='')
        user.set_password(password)
        session.add(user); session.commit()
    return user


def ensure_technician(username: str, name: Optional[str] = None, password: Optional[str] = DEFAULT_PASSWORD,
                      active: bool = True) -> Technician:
    session = get_db()
    tech = session.query(Technician).filter_by(username=username).one_or_none()
    if not tech:
        tech = Technician(name=name or username, username=username, specialty='', active=active)
        if password:
            tech.set_password(password)
        session.add(tech); session.commit()
    return tech


def ensure_device(device_type: str = 'Evrak İmha Makinesi') -> Device:
    session = get_db()
    device = session.query(Device).filter_by(device_type=device_type).first()
    if not device:
        device = Device(device_type=device_type)
        session.add(device); session.commit()
    return device


def insert_ticket(title: str = 'Seeded ticket', status: str = Ticket.STATUS_ACCEPTED_PENDING, **fields) -> Ticket:
    """Insert a ticket in any state (non-idempotent)."""
    session = get_db()
    now = utcnow()
    values = {
        'title': title,
        'status': status,
        'priority': 'medium',
        'won': False,
        'won_hidden': False,
        'created_at': now,
        'updated_at': now,
    }
    values.update(fields)
    if 'device_id' not in values:
        values['device_id'] = ensure_device().id
    ticket = Ticket(**values)
    session.add(ticket); session.commit()
    return ticket


def insert_won_ticket(staff_id: str, won_at, amount: Optional[float] = 100.0, repair_hours: int = 24, **fields) -> Ticket:
    return insert_ticket(
        title=fields.pop('title', 'Won ticket'),
        status=Ticket.STATUS_DELIVERY,
        won=True,
        won_at=won_at,
        assigned_to=staff_id,
        total_service_amount=amount,
        invoice_number=fields.pop('invoice_number', unique('INV')) if amount is not None else None,
        created_at=won_at - timedelta(hours=repair_hours),
        updated_at=won_at,
        **fields,
    )


def notes_for(ticket_id: str):
    return get_db().query(TicketNote).filter_by(ticket_id=ticket_id).all()


__all__ = [
    'unique', 'ensure_admin', 'ensure_technician', 'ensure_device', 'insert_ticket', 'insert_won_ticket',
    'notes_for', 'DEFAULT_PASSWORD',
]
