"""Ticket intake, direct edits and notes.

Status, won flags and timestamps are owned by the lifecycle engine; direct edits only
touch descriptive, snapshot and financial fields.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional
from techservice.errors import TicketNotFound, ValidationError
from techservice.models.ticket import Ticket
from techservice.utils.clock import utcnow
from techservice.utils.validation import (
    FieldErrors, optional_text, parse_amount, require_text, resolve_brand, validate_status,
)

SNAPSHOT_FIELDS = (
    'serial_number', 'product_type', 'model', 'model_number', 'custom_code',
    'customer_full_name', 'customer_phone', 'customer_extension', 'customer_email', 'customer_address',
    'billing_company_name', 'billing_address', 'billing_tax_office', 'billing_tax_number',
    'invoice_number',
)
AMOUNT_FIELDS = ('total_service_amount', 'approved_labor_cost', 'approved_service_cost')
# Set together or not at all
PAIRED_FIELDS = (
    ('approved_labor_cost', 'approved_service_cost'),
    ('invoice_number', 'total_service_amount'),
)
LIFECYCLE_FIELDS = ('id', 'status', 'won', 'won_at', 'won_hidden', 'created_at', 'updated_at')


def _clean_fields(data: Dict[str, Any], store, errors: FieldErrors, partial: bool) -> Dict[str, Any]:
    """Validate and normalise the editable ticket fields present in ``data``."""
    out: Dict[str, Any] = {}
    if not partial or 'title' in data:
        out['title'] = errors.check(require_text, data.get('title'), 'title')
    if not partial or 'device_id' in data:
        device_id = errors.check(require_text, data.get('device_id'), 'device_id')
        if device_id and store.get('devices', device_id) is None:
            errors.fields['device_id'] = 'unknown device'
        out['device_id'] = device_id
    if 'description' in data:
        out['description'] = optional_text(data.get('description'))
    if not partial or 'priority' in data:
        out['priority'] = errors.check(validate_status, data.get('priority') or 'medium', Ticket.ALL_PRIORITIES, 'priority')
    if not partial or 'warranty_status' in data:
        out['warranty_status'] = errors.check(
            validate_status, data.get('warranty_status') or 'unknown', Ticket.ALL_WARRANTY_STATUSES, 'warranty_status'
        )
    if 'brand' in data:
        out['brand'] = errors.check(resolve_brand, data.get('brand'), data.get('brand_custom'))
    for name in SNAPSHOT_FIELDS:
        if name in data:
            out[name] = optional_text(data.get(name))
    for name in AMOUNT_FIELDS:
        if name in data:
            out[name] = errors.check(parse_amount, data.get(name), name)
    if 'assigned_to' in data:
        assigned = optional_text(data.get('assigned_to'))
        if assigned and store.get('technicians', assigned) is None:
            errors.fields['assigned_to'] = 'unknown technician'
        out['assigned_to'] = assigned
    return out


def _check_pairs(merged: Dict[str, Any], errors: FieldErrors):
    for first, second in PAIRED_FIELDS:
        if (merged.get(first) is None) != (merged.get(second) is None):
            missing = second if merged.get(second) is None else first
            errors.fields.setdefault(missing, f'required together with {first if missing == second else second}')


def create_ticket(store, data: Dict[str, Any], staff_id: Optional[str] = None, clock=utcnow) -> Dict[str, Any]:
    """Intake a ticket in the first stage. A staff creator becomes the assignee."""
    errors = FieldErrors()
    fields = _clean_fields(data, store, errors, partial=False)
    _check_pairs(fields, errors)
    errors.raise_if_any()
    if staff_id:
        fields['assigned_to'] = staff_id
    now = clock()
    fields.update({
        'status': Ticket.STATUS_ACCEPTED_PENDING,
        'won': False,
        'won_hidden': False,
        'created_at': now,
        'updated_at': now,
    })
    return store.insert('tickets', fields)


def update_ticket(store, ticket_id: str, data: Dict[str, Any], clock=utcnow) -> Dict[str, Any]:
    current = store.get('tickets', ticket_id)
    if current is None:
        raise TicketNotFound('Ticket not found')
    locked = sorted(k for k in data if k in LIFECYCLE_FIELDS)
    if locked:
        raise ValidationError(fields={k: 'not directly editable' for k in locked})
    errors = FieldErrors()
    fields = _clean_fields(data, store, errors, partial=True)
    _check_pairs(dict(current, **fields), errors)
    errors.raise_if_any()
    fields['updated_at'] = clock()
    rows = store.update('tickets', ticket_id, fields)
    if not rows:
        raise TicketNotFound('Ticket not found')
    return rows[0]


def get_ticket(store, ticket_id: str) -> Dict[str, Any]:
    row = store.get('tickets', ticket_id)
    if row is None:
        raise TicketNotFound('Ticket not found')
    return row


def list_notes(store, ticket_id: str) -> List[Dict[str, Any]]:
    return store.select('ticket_notes', [('ticket_id', 'eq', ticket_id)], order=[('created_at', 'desc')])


def add_note(store, ticket_id: str, content: Any, author: Optional[str] = None, clock=utcnow) -> Dict[str, Any]:
    get_ticket(store, ticket_id)
    text = require_text(content, 'content')
    return store.insert('ticket_notes', {
        'ticket_id': ticket_id,
        'content': text,
        'created_by': author or 'Staff',
        'created_at': clock(),
    })


__all__ = ['create_ticket', 'update_ticket', 'get_ticket', 'list_notes', 'add_note', 'LIFECYCLE_FIELDS']
