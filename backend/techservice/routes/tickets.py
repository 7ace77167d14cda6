from __future__ import annotations
from flask import Blueprint, request, current_app
from techservice import get_db
from techservice.decorators.auth import require_permissions
from techservice.decorators.audit import audit_log
from techservice.errors import ValidationError
from techservice.models.ticket import Ticket
from techservice.services import tickets as ticket_service
from techservice.services.audit import entity_history
from techservice.services.lifecycle import TransitionEngine, PIPELINE, gate_for
from techservice.services.policy import current_actor_name, current_staff_id
from techservice.services.store import RecordStore
from techservice.utils.filters import build_filters
from techservice.utils.listing import paginate, latest_timestamp, cached_list, cached_item, row_json
from techservice.utils.sorting import parse_sort

tkt_bp = Blueprint('tickets', __name__)


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered not in ('true', 'false', '1', '0'):
        raise ValueError(value)
    return lowered in ('true', '1')


FILTER_SPECS = {
    'status': {'validate': lambda v: v in Ticket.ALL_STATUSES},
    'priority': {'validate': lambda v: v in Ticket.ALL_PRIORITIES},
    'assigned_to': {},
    'device_id': {},
    'won': {'coerce': _parse_bool},
}
SEARCH_FIELDS = ('title', 'customer_full_name', 'serial_number', 'invoice_number')
SORT_FIELDS = ('created_at', 'updated_at', 'status', 'priority', 'title', 'won_at')
DEFAULT_ORDER = [('created_at', 'desc')]


def _store():
    return RecordStore(get_db())


def _engine(store=None):
    return TransitionEngine(store or _store(), settle_delay_ms=current_app.config.get('WON_SETTLE_DELAY_MS', 0))


def _prefetch_ticket(ticket_id):
    row = _store().get('tickets', ticket_id) if ticket_id else None
    if not row:
        return {}
    return {'status': row['status'], 'won': row['won'], 'won_hidden': row['won_hidden'], 'assigned_to': row['assigned_to']}


def _status_change(data, rv, args, kwargs):
    ticket = data.get('ticket') or {}
    meta = {'changes': {'status': {'before': data.get('previous_status'), 'after': ticket.get('status')}}}
    if data.get('warnings'):
        meta['warnings'] = data['warnings']
    return meta


@tkt_bp.route('', methods=['GET', 'HEAD'])
@require_permissions('TKT.READ')
def list_tickets():
    store = _store()
    filters = build_filters(FILTER_SPECS, request.args)
    order = parse_sort(request.args.get('sort'), SORT_FIELDS, default=DEFAULT_ORDER)
    search = (SEARCH_FIELDS, request.args.get('q')) if request.args.get('q') else None
    rows, total, limit, offset = paginate(store, 'tickets', filters, order, search)
    return cached_list(row_json(rows), total, limit, offset, latest_timestamp(rows), head=request.method == 'HEAD')


@tkt_bp.post('')
@require_permissions('TKT.CREATE')
@audit_log('TICKET.CREATE', entity='Ticket', entity_id_key='id', meta_keys=['title', 'status', 'assigned_to'])
def create_ticket():
    row = ticket_service.create_ticket(_store(), request.json or {}, staff_id=current_staff_id())
    current_app.logger.info('ticket %s created', row['id'])
    return row_json(row), 201


@tkt_bp.route('/<ticket_id>', methods=['GET', 'HEAD'])
@require_permissions('TKT.READ')
def get_ticket(ticket_id: str):
    store = _store()
    row = ticket_service.get_ticket(store, ticket_id)
    notes = ticket_service.list_notes(store, ticket_id)
    body = row_json(row)
    body['notes'] = row_json(notes)
    next_status = PIPELINE.next_of(row['status'])
    body['next_status'] = next_status
    body['next_required'] = list(gate_for(next_status).required) if next_status else []
    # Notes are part of the body, so they feed the validators too
    stamps = [ts for ts in (row['updated_at'], latest_timestamp(notes, 'created_at')) if ts]
    return cached_item(body, max(stamps) if stamps else None, ids=[row['id']] + [n['id'] for n in notes])


@tkt_bp.patch('/<ticket_id>')
@require_permissions('TKT.UPDATE')
@audit_log('TICKET.UPDATE', entity='Ticket', entity_id_key='id',
           diff_keys=['assigned_to'], pre_fetch=lambda a, kw: _prefetch_ticket(kw.get('ticket_id')))
def update_ticket(ticket_id: str):
    row = ticket_service.update_ticket(_store(), ticket_id, request.json or {})
    return row_json(row)


@tkt_bp.post('/<ticket_id>/transition')
@require_permissions('TKT.TRANSITION')
@audit_log('TICKET.TRANSITION', entity='Ticket', entity_id_arg='ticket_id', meta_builder=_status_change)
def transition_ticket(ticket_id: str):
    data = dict(request.json or {})
    target = data.pop('target_status', None) or data.pop('status', None)
    if not target:
        raise ValidationError(fields={'target_status': 'required'})
    result = _engine().request_transition(ticket_id, target, data, actor_name=current_actor_name())
    return {
        'ticket': row_json(result.ticket),
        'previous_status': result.previous_status,
        'note': row_json(result.note),
        'notifications': result.notifications,
        'warnings': result.warnings,
    }


@tkt_bp.post('/<ticket_id>/won')
@require_permissions('TKT.WIN')
@audit_log('TICKET.WON', entity='Ticket', entity_id_key='id',
           diff_keys=['won', 'assigned_to'], pre_fetch=lambda a, kw: _prefetch_ticket(kw.get('ticket_id')))
def mark_won(ticket_id: str):
    row = _engine().mark_won(ticket_id, current_staff_id())
    return row_json(row)


@tkt_bp.post('/<ticket_id>/hide-won')
@require_permissions('ADMIN.WON.HIDE')
@audit_log('TICKET.WON.HIDE', entity='Ticket', entity_id_key='id',
           diff_keys=['won_hidden'], pre_fetch=lambda a, kw: _prefetch_ticket(kw.get('ticket_id')))
def hide_won(ticket_id: str):
    row = _engine().clear_won(ticket_id)
    return row_json(row)


@tkt_bp.get('/<ticket_id>/notes')
@require_permissions('TKT.READ')
def list_notes(ticket_id: str):
    store = _store()
    ticket_service.get_ticket(store, ticket_id)
    return {'data': row_json(ticket_service.list_notes(store, ticket_id))}


@tkt_bp.post('/<ticket_id>/notes')
@require_permissions('TKT.UPDATE')
@audit_log('TICKET.NOTE', entity='Ticket', entity_id_arg='ticket_id', meta_keys=['id', 'created_by'])
def add_note(ticket_id: str):
    data = request.json or {}
    note = ticket_service.add_note(_store(), ticket_id, data.get('content'), author=current_actor_name())
    return row_json(note), 201


@tkt_bp.get('/<ticket_id>/history')
@require_permissions('TKT.READ')
def ticket_history(ticket_id: str):
    ticket_service.get_ticket(_store(), ticket_id)
    return {'data': row_json(entity_history('Ticket', ticket_id))}
