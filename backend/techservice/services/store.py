"""Record store over the SQLAlchemy session.

The lifecycle engine, reports and board never touch ORM objects directly; they issue
insert / update / select / delete calls against named tables and get plain dict rows
back. Any database error is rolled back and re-raised as StoreFailure.

Filters are ``(field, op, value)`` tuples::

    store.select('tickets', [('assigned_to', 'eq', staff_id), ('won', 'eq', True),
                             ('won_at', 'not_null', None), ('won_at', 'gte', start)],
                 order=[('won_at', 'desc')])
"""
from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from sqlalchemy import select, func, or_
from sqlalchemy.exc import SQLAlchemyError
from techservice.errors import StoreFailure, ValidationError
from techservice.models.accounts import AdminUser, Technician
from techservice.models.ticket import Device, Ticket, TicketNote
from techservice.models.audit import AuditLog
from techservice.utils.clock import as_utc

logger = logging.getLogger(__name__)

TABLES = {
    'tickets': Ticket,
    'ticket_notes': TicketNote,
    'devices': Device,
    'technicians': Technician,
    'admin_users': AdminUser,
    'audit_logs': AuditLog,
}

# Columns never handed out in rows
HIDDEN_COLUMNS = {'password_hash'}

OPERATORS = {
    'eq': lambda col, v: col == v,
    'neq': lambda col, v: col != v,
    'is_null': lambda col, v: col.is_(None),
    'not_null': lambda col, v: col.is_not(None),
    'not_true': lambda col, v: or_(col.is_(None), col == False),  # noqa: E712
    'gte': lambda col, v: col >= v,
    'gt': lambda col, v: col > v,
    'lte': lambda col, v: col <= v,
    'lt': lambda col, v: col < v,
    'in': lambda col, v: col.in_(list(v)),
    'ilike': lambda col, v: col.ilike(f"%{v}%"),
}

Filter = Tuple[str, str, Any]


def _bind_value(value):
    if isinstance(value, datetime):
        return as_utc(value)
    return value


class RecordStore:
    def __init__(self, session, tables: Optional[Dict[str, Any]] = None):
        self.session = session
        self.tables = tables or TABLES

    # -- helpers ------------------------------------------------------------------ #
    def _model(self, table: str):
        model = self.tables.get(table)
        if model is None:
            raise ValueError(f'unknown table {table}')
        return model

    def _column(self, model, field: str):
        col = getattr(model, field, None)
        if col is None or field not in model.__table__.columns:
            raise ValidationError(fields={field: 'unknown field'})
        return col

    def _where(self, model, filters: Iterable[Filter], search=None):
        clauses = []
        for field, op, value in filters or ():
            builder = OPERATORS.get(op)
            if builder is None:
                raise ValueError(f'unsupported filter op {op}')
            clauses.append(builder(self._column(model, field), _bind_value(value)))
        if search:
            fields, term = search
            if term:
                clauses.append(or_(*[self._column(model, f).ilike(f"%{term}%") for f in fields]))
        return clauses

    @staticmethod
    def row_dict(obj) -> Dict[str, Any]:
        row = {}
        for col in obj.__table__.columns:
            if col.name in HIDDEN_COLUMNS:
                continue
            value = getattr(obj, col.name)
            if isinstance(value, datetime):
                value = as_utc(value)
            row[col.name] = value
        return row

    def _fail(self, op: str, table: str, exc: Exception):
        self.session.rollback()
        logger.error('record store %s on %s failed: %s', op, table, exc)
        raise StoreFailure(f'{op} on {table} failed') from exc

    # -- contract ----------------------------------------------------------------- #
    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        model = self._model(table)
        for field in row:
            self._column(model, field)
        obj = model(**{k: _bind_value(v) for k, v in row.items()})
        try:
            self.session.add(obj)
            self.session.commit()
        except SQLAlchemyError as e:
            self._fail('insert', table, e)
        return self.row_dict(obj)

    def update(self, table: str, id: str, patch: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Apply ``patch`` to one row in a single commit; return the post-update row(s)."""
        model = self._model(table)
        for field in patch:
            self._column(model, field)
        try:
            obj = self.session.get(model, id, populate_existing=True)
            if obj is None:
                return []
            for field, value in patch.items():
                setattr(obj, field, _bind_value(value))
            self.session.commit()
            fresh = self.session.get(model, id, populate_existing=True)
        except SQLAlchemyError as e:
            self._fail('update', table, e)
        return [self.row_dict(fresh)] if fresh is not None else []

    def get(self, table: str, id: str) -> Optional[Dict[str, Any]]:
        """Fresh read of a single row (bypasses the identity map)."""
        model = self._model(table)
        try:
            obj = self.session.get(model, id, populate_existing=True)
        except SQLAlchemyError as e:
            self._fail('get', table, e)
        return self.row_dict(obj) if obj is not None else None

    def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order: Sequence[Tuple[str, str]] = (),
        limit: Optional[int] = None,
        offset: int = 0,
        search=None,
    ) -> List[Dict[str, Any]]:
        model = self._model(table)
        stmt = select(model).where(*self._where(model, filters, search))
        for field, direction in order or ():
            col = self._column(model, field)
            stmt = stmt.order_by(col.desc() if direction == 'desc' else col.asc())
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        stmt = stmt.execution_options(populate_existing=True)
        try:
            rows = self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            self._fail('select', table, e)
        return [self.row_dict(r) for r in rows]

    def count(self, table: str, filters: Sequence[Filter] = (), search=None) -> int:
        model = self._model(table)
        stmt = select(func.count()).select_from(model).where(*self._where(model, filters, search))
        try:
            return int(self.session.execute(stmt).scalar_one())
        except SQLAlchemyError as e:
            self._fail('count', table, e)

    def delete(self, table: str, id: str) -> bool:
        model = self._model(table)
        try:
            obj = self.session.get(model, id)
            if obj is None:
                return False
            self.session.delete(obj)
            self.session.commit()
        except SQLAlchemyError as e:
            self._fail('delete', table, e)
        return True


__all__ = ['RecordStore', 'TABLES', 'OPERATORS']
