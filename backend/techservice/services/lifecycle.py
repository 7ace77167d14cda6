"""Ticket lifecycle engine.

Moves a ticket through the fixed pipeline one stage at a time. Some stages are gated:
the caller must supply extra data (diagnosis note, approved costs, invoice details)
before the move commits. ``won`` is a flag orthogonal to status, reachable only from
``delivery`` via ``mark_won``.

The engine always re-reads the ticket from the store before validating, so a stale
client copy can never push a ticket past a move made by someone else.
"""
from __future__ import annotations
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
from techservice.errors import StoreFailure, TicketNotFound, TransitionRejected, VerificationFailed
from techservice.models.ticket import Ticket
from techservice.utils.clock import utcnow
from techservice.utils.fsm import TransitionValidator
from techservice.utils.validation import FieldErrors, parse_amount, require_text

logger = logging.getLogger(__name__)

PIPELINE = TransitionValidator.linear(Ticket.ALL_STATUSES)

EVENT_DELIVERED = 'ticket.delivered'
EVENT_WON = 'ticket.won'

NOTE_AUTHOR_DEFAULT = 'Staff'


def _diagnosis_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    return {'diagnosis_note': require_text(data.get('diagnosis_note'), 'diagnosis_note')}


def _approval_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    errors = FieldErrors()
    labor = errors.check(parse_amount, data.get('approved_labor_cost'), 'approved_labor_cost', required=True)
    service = errors.check(parse_amount, data.get('approved_service_cost'), 'approved_service_cost', required=True)
    errors.raise_if_any()
    return {'approved_labor_cost': labor, 'approved_service_cost': service}


def _invoice_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    errors = FieldErrors()
    number = errors.check(require_text, data.get('invoice_number'), 'invoice_number')
    amount = errors.check(parse_amount, data.get('total_service_amount'), 'total_service_amount', required=True)
    errors.raise_if_any()
    return {'invoice_number': number, 'total_service_amount': amount}


@dataclass(frozen=True)
class Gate:
    """What entering a stage requires and what it does once committed.

    ``parse`` validates caller data and returns cleaned values; ``ticket_fields`` names
    which of those go into the ticket update; ``side_effect`` runs after the commit.
    """
    required: Tuple[str, ...] = ()
    parse: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None
    ticket_fields: Tuple[str, ...] = ()
    side_effect: Optional[str] = None


GATES: Dict[str, Gate] = {
    Ticket.STATUS_FAULT_DIAGNOSIS: Gate(
        required=('diagnosis_note',), parse=_diagnosis_fields, side_effect='append_diagnosis_note',
    ),
    Ticket.STATUS_CUSTOMER_APPROVAL: Gate(
        required=('approved_labor_cost', 'approved_service_cost'), parse=_approval_fields,
        ticket_fields=('approved_labor_cost', 'approved_service_cost'),
    ),
    Ticket.STATUS_UNDER_REPAIR: Gate(),
    Ticket.STATUS_READY_FOR_DELIVERY: Gate(),
    Ticket.STATUS_INVOICING: Gate(
        required=('invoice_number', 'total_service_amount'), parse=_invoice_fields,
        ticket_fields=('invoice_number', 'total_service_amount'),
    ),
    Ticket.STATUS_DELIVERY: Gate(side_effect='notify_delivered'),
}


def gate_for(target_status: str) -> Gate:
    return GATES.get(target_status, Gate())


class PendingTransitions:
    """Per-ticket in-flight guard: a second request for the same ticket is refused."""

    def __init__(self):
        self._lock = threading.Lock()
        self._ids = set()

    @contextmanager
    def hold(self, ticket_id: str):
        with self._lock:
            if ticket_id in self._ids:
                raise TransitionRejected('Another change for this ticket is still pending', reason='transition_pending')
            self._ids.add(ticket_id)
        try:
            yield
        finally:
            with self._lock:
                self._ids.discard(ticket_id)

    def is_pending(self, ticket_id: str) -> bool:
        with self._lock:
            return ticket_id in self._ids


# Shared by every engine in the process (engines are built per request)
PENDING = PendingTransitions()


@dataclass
class TransitionResult:
    ticket: Dict[str, Any]
    previous_status: str
    note: Optional[Dict[str, Any]] = None
    notifications: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _ticket_id(ticket) -> str:
    if isinstance(ticket, dict):
        return ticket.get('id')
    return ticket


class TransitionEngine:
    def __init__(self, store, clock: Callable = utcnow, pending: Optional[PendingTransitions] = None,
                 settle_delay_ms: int = 0):
        self.store = store
        self.clock = clock
        self.pending = pending or PENDING
        self.settle_delay_ms = settle_delay_ms
        self._listeners: Dict[str, List[Callable]] = {}

    # -- notifications ------------------------------------------------------------ #
    def on(self, event: str, callback: Callable[[Dict[str, Any]], Any]):
        self._listeners.setdefault(event, []).append(callback)
        return callback

    def _emit(self, event: str, ticket: Dict[str, Any]):
        for callback in self._listeners.get(event, []):
            callback(ticket)

    def _load(self, ticket_id: Optional[str]) -> Dict[str, Any]:
        if not ticket_id:
            raise TicketNotFound('Ticket not found')
        row = self.store.get('tickets', ticket_id)
        if row is None:
            raise TicketNotFound('Ticket not found')
        return row

    # -- status moves -------------------------------------------------------------- #
    def validate_transition(self, ticket: Dict[str, Any], target_status: str, data: Optional[Dict[str, Any]] = None):
        """Check the move and the gate data without writing anything.

        Returns the cleaned gate values.
        """
        PIPELINE.assert_can_transition(ticket['status'], target_status)
        gate = gate_for(target_status)
        return gate.parse(data or {}) if gate.parse else {}

    def request_transition(self, ticket, target_status: str, data: Optional[Dict[str, Any]] = None,
                           actor_name: Optional[str] = None) -> TransitionResult:
        ticket_id = _ticket_id(ticket)
        with self.pending.hold(ticket_id or ''):
            current = self._load(ticket_id)
            cleaned = self.validate_transition(current, target_status, data)
            gate = gate_for(target_status)
            now = self.clock()
            patch = {'status': target_status, 'updated_at': now}
            for name in gate.ticket_fields:
                patch[name] = cleaned[name]
            rows = self.store.update('tickets', ticket_id, patch)
            if not rows:
                raise TicketNotFound('Ticket not found')
            result = TransitionResult(ticket=rows[0], previous_status=current['status'])
            if gate.side_effect:
                getattr(self, '_' + gate.side_effect)(result, cleaned, actor_name)
            logger.info('ticket %s moved %s -> %s', ticket_id, current['status'], target_status)
            return result

    def _append_diagnosis_note(self, result: TransitionResult, cleaned: Dict[str, Any], actor_name: Optional[str]):
        # Second write; the status change above stays committed if this one fails.
        try:
            result.note = self.store.insert('ticket_notes', {
                'ticket_id': result.ticket['id'],
                'content': cleaned['diagnosis_note'],
                'created_by': actor_name or NOTE_AUTHOR_DEFAULT,
                'created_at': self.clock(),
            })
        except StoreFailure:
            logger.warning(
                'data quality: ticket %s moved to %s but its diagnosis note was not saved',
                result.ticket['id'], result.ticket['status'],
            )
            result.warnings.append('note_insert_failed')

    def _notify_delivered(self, result: TransitionResult, cleaned: Dict[str, Any], actor_name: Optional[str]):
        result.notifications.append('delivery_completed')
        self._emit(EVENT_DELIVERED, result.ticket)

    # -- won flag ------------------------------------------------------------------ #
    def mark_won(self, ticket, acting_staff_id: Optional[str]) -> Dict[str, Any]:
        """Attribute a delivered ticket's revenue to the acting staff member.

        ``assigned_to`` is overwritten with the acting id. The written row is verified
        and then confirmed by a fresh read before listeners are told.
        """
        if not acting_staff_id:
            raise TransitionRejected('Cannot mark a ticket won without the acting staff id', reason='missing_actor')
        ticket_id = _ticket_id(ticket)
        with self.pending.hold(ticket_id or ''):
            current = self._load(ticket_id)
            if current['status'] != Ticket.STATUS_DELIVERY:
                raise TransitionRejected('Only delivered tickets can be marked won', reason='not_delivered')
            if current.get('won'):
                raise TransitionRejected('Ticket is already won', reason='already_won')
            now = self.clock()
            rows = self.store.update('tickets', ticket_id, {
                'won': True,
                'won_at': now,
                'assigned_to': acting_staff_id,
                'updated_at': now,
            })
            self._verify_won(rows[0] if rows else None, acting_staff_id)
            confirmed = self.store.get('tickets', ticket_id)
            self._verify_won(confirmed, acting_staff_id)
        logger.info('ticket %s marked won by %s', ticket_id, acting_staff_id)
        if self.settle_delay_ms:
            time.sleep(self.settle_delay_ms / 1000.0)
        self._emit(EVENT_WON, confirmed)
        return confirmed

    @staticmethod
    def _verify_won(row: Optional[Dict[str, Any]], acting_staff_id: str):
        if not row or not row.get('won') or row.get('assigned_to') != acting_staff_id or row.get('won_at') is None:
            logger.error('won verification failed for ticket %s', (row or {}).get('id'))
            raise VerificationFailed('Ticket could not be verified as won')

    def clear_won(self, ticket) -> Dict[str, Any]:
        """Hide a won ticket from the won report. won / won_at / status are untouched."""
        current = self._load(_ticket_id(ticket))
        if not current.get('won'):
            raise TransitionRejected('Only won tickets can be hidden from the won report', reason='not_won')
        rows = self.store.update('tickets', current['id'], {'won_hidden': True, 'updated_at': self.clock()})
        if not rows:
            raise TicketNotFound('Ticket not found')
        return rows[0]


__all__ = [
    'TransitionEngine', 'TransitionResult', 'PendingTransitions', 'Gate', 'GATES', 'PIPELINE', 'gate_for',
    'EVENT_DELIVERED', 'EVENT_WON',
]
