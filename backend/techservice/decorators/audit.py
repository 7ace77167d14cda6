"""Audit logging decorator so route handlers do not call add_audit() by hand.

Usage examples:

@audit_log('TICKET.CREATE', entity='Ticket', entity_id_key='id', meta_keys=['title', 'status'])
def create_ticket():
    ... return {'id': ..., 'title': ..., 'status': ...}, 201

@audit_log('TICKET.TRANSITION', entity='Ticket', entity_id_key='id', diff_keys=['status'],
           pre_fetch=lambda a, kw: _prefetch_ticket(kw.get('ticket_id')))
def transition_ticket(ticket_id): ...

Parameters:
  action: required audit action code (e.g. TICKET.WON)
  entity: optional entity label (Ticket, Device, Technician)
  entity_id_key: key in the returned JSON object whose value becomes entity_id.
  entity_id_arg: name of the view argument to use for entity_id (fallback if entity_id_key absent).
  meta_keys: keys projected from the returned JSON into meta (shallow copy).
  meta_builder: callable returning a meta dict; receives (data, original_return_value, args, kwargs).
  diff_keys / pre_fetch: snapshot those keys before the view runs and record before/after changes.

Only successful returns are audited; a view that raises leaves no audit row. The view's
own commit is already durable, so a failing audit write is logged and never fails the
response.
"""
from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable, Iterable, Optional, Dict
from sqlalchemy.exc import SQLAlchemyError

from techservice.services.audit import add_audit
from techservice import get_db

logger = logging.getLogger(__name__)


def _extract_payload(rv: Any):
    """Return the JSON-able dict of a view return value (dict or (dict, status[, headers]))."""
    if isinstance(rv, tuple) and rv:
        return rv[0]
    return rv


def _diff(before: Dict[str, Any], after: Dict[str, Any], keys: Iterable[str]) -> Dict[str, Any]:
    changes = {}
    for k in keys:
        if k in before and k in after and before.get(k) != after.get(k):
            changes[k] = {'before': before.get(k), 'after': after.get(k)}
    return changes


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before = pre_fetch(args, kwargs) if (diff_keys and pre_fetch) else None
            rv = fn(*args, **kwargs)
            data = _extract_payload(rv)
            if not isinstance(data, dict):
                data = {}
            entity_id = data.get(entity_id_key) if entity_id_key else None
            if entity_id is None and entity_id_arg:
                entity_id = kwargs.get(entity_id_arg)
            if meta_builder:
                meta = meta_builder(data, rv, args, kwargs) or {}
            else:
                meta = {k: data.get(k) for k in (meta_keys or ()) if k in data}
            if diff_keys and before:
                changes = _diff(before, data, diff_keys)
                if changes:
                    meta['changes'] = changes
            session = get_db()
            try:
                add_audit(action, entity, entity_id, meta)
                session.commit()
            except SQLAlchemyError:
                session.rollback()
                logger.exception('audit write failed for %s %s', action, entity_id)
            return rv
        return wrapper
    return outer
