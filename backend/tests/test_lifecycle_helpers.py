"""Reusable test helpers for the ticket lifecycle.

Patterns unified:
 - Auth header creation using direct JWT claims (bypassing /auth/login).
 - Walking a ticket forward through the pipeline with the data each gate needs.
 - Transition assertion with the expected HTTP status and rejection reason.
"""
from __future__ import annotations
from typing import Dict, Optional
from flask_jwt_extended import create_access_token
from techservice.constants.permissions import permissions_for
from techservice.models.ticket import Ticket
from tests.test_utils_seed import ensure_admin, ensure_device, ensure_technician, unique

GATE_DATA = {
    Ticket.STATUS_FAULT_DIAGNOSIS: {'diagnosis_note': 'Motor brushes worn'},
    Ticket.STATUS_CUSTOMER_APPROVAL: {'approved_labor_cost': '50.00', 'approved_service_cost': '25'},
    Ticket.STATUS_INVOICING: {'invoice_number': 'INV-1001', 'total_service_amount': '75.00'},
}

# ---------- Generic Auth Helpers ---------- #

def jwt_headers(identity: str, user_type: str, name: str = 'Tester'):
    token = create_access_token(identity=str(identity), additional_claims={
        'user_type': user_type,
        'name': name,
        'perms': permissions_for(user_type),
    })
    return {'Authorization': f'Bearer {token}'}


def admin_headers():
    admin = ensure_admin('admin@example.com')
    return jwt_headers(admin.id, 'admin', admin.name)


def staff_headers(tech=None):
    tech = tech or ensure_technician(unique('tech'))
    return jwt_headers(tech.id, 'staff', tech.name)

# ---------- Lifecycle Helpers ---------- #

def create_ticket(client, headers: Dict[str, str], **overrides):
    payload = {'title': 'Printer jam', 'device_id': ensure_device().id}
    payload.update(overrides)
    resp = client.post('/tickets', json=payload, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    assert body['status'] == Ticket.STATUS_ACCEPTED_PENDING
    return body


def transition(client, ticket_id: str, headers: Dict[str, str], target: str, data: Optional[dict] = None):
    payload = {'target_status': target}
    payload.update(GATE_DATA.get(target, {}) if data is None else data)
    return client.post(f'/tickets/{ticket_id}/transition', json=payload, headers=headers)


def assert_transition(client, ticket_id: str, headers: Dict[str, str], target: str, expected_status: int = 200,
                      data: Optional[dict] = None, reason: Optional[str] = None):
    resp = transition(client, ticket_id, headers, target, data)
    assert resp.status_code == expected_status, resp.get_json()
    body = resp.get_json()
    if expected_status < 400:
        assert body['ticket']['status'] == target
    elif reason:
        assert body['error']['reason'] == reason
    return resp


def advance_to(client, ticket_id: str, headers: Dict[str, str], target: str):
    """Walk the ticket forward one stage at a time until it reaches target."""
    current = client.get(f'/tickets/{ticket_id}', headers=headers).get_json()['status']
    stages = Ticket.ALL_STATUSES
    for stage in stages[stages.index(current) + 1: stages.index(target) + 1]:
        assert_transition(client, ticket_id, headers, stage)


__all__ = [
    'GATE_DATA', 'jwt_headers', 'admin_headers', 'staff_headers', 'create_ticket', 'transition',
    'assert_transition', 'advance_to',
]
