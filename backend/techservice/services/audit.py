from __future__ import annotations
from typing import Any, Dict, Optional
from flask_jwt_extended import get_jwt_identity, get_jwt
from techservice import get_db
from techservice.models.audit import AuditLog
from techservice.services.store import RecordStore


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[str] = None, meta: Optional[Dict[str, Any]] = None):
    """Stage an audit log entry on the current DB session.

    Parameters:
      action: short action code e.g. TICKET.TRANSITION, TICKET.WON, TICKET.NOTE
      entity: optional entity name (Ticket, Device, Technician)
      entity_id: optional primary key string
      meta: additional JSON-safe dictionary (will be shallow copied)
    """
    session = get_db()
    actor_id = get_jwt_identity()
    actor_type = (get_jwt() or {}).get('user_type')
    log = AuditLog(
        actor_id=str(actor_id) if actor_id is not None else None,
        actor_type=actor_type,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=dict(meta or {}),
    )
    session.add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log


def entity_history(entity: str, entity_id: str):
    """Audit events for one entity, oldest first."""
    store = RecordStore(get_db())
    return store.select('audit_logs', [('entity', 'eq', entity), ('entity_id', 'eq', entity_id)],
                        order=[('created_at', 'asc'), ('id', 'asc')])


__all__ = ['add_audit', 'entity_history']
