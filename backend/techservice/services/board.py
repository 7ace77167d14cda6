"""Client-side kanban cache: a model of the staff board that the HTTP API does not mount.

The board keeps two explicit layers: ``confirmed`` rows as last read from the store and
``displayed`` rows as the user currently sees them. A move is a small command (patch
plus inverse patch): the patch is applied to ``displayed`` straight away, then on
success both layers take what the store returned, and on any failure the inverse is
applied to ``displayed`` and the error re-raised. ``confirmed`` is never touched by a
move that has not been acknowledged.

While a move for a ticket is in flight the ticket is disabled: a second drop on it is
refused before anything reaches the engine.
"""
from __future__ import annotations
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from techservice.errors import TicketNotFound, TransitionRejected
from techservice.models.ticket import Ticket
from techservice.services.lifecycle import EVENT_WON, gate_for

logger = logging.getLogger(__name__)

WON_COLUMN = 'won'
COLUMNS = Ticket.ALL_STATUSES + (WON_COLUMN,)


@dataclass
class TentativeMove:
    ticket_id: str
    patch: Dict[str, Any]
    inverse: Dict[str, Any]


class KanbanBoard:
    def __init__(self, engine):
        self.engine = engine
        self.confirmed: Dict[str, Dict[str, Any]] = OrderedDict()
        self.displayed: Dict[str, Dict[str, Any]] = OrderedDict()
        self.tentative: Dict[str, TentativeMove] = {}
        engine.on(EVENT_WON, self._on_won)

    # -- cache --------------------------------------------------------------------- #
    def refresh(self):
        rows = self.engine.store.select('tickets', order=[('created_at', 'desc')])
        self.confirmed = OrderedDict((r['id'], r) for r in rows)
        # Moves still in flight stay visible on top of the fresh rows
        self.displayed = OrderedDict()
        for ticket_id, row in self.confirmed.items():
            move = self.tentative.get(ticket_id)
            self.displayed[ticket_id] = dict(row, **move.patch) if move else dict(row)
        return self

    def _on_won(self, ticket: Dict[str, Any]):
        self.refresh()

    def view(self, ticket_id: str) -> Optional[Dict[str, Any]]:
        """The row as displayed, tentative changes included."""
        row = self.displayed.get(ticket_id)
        return dict(row) if row is not None else None

    def is_pending(self, ticket_id: str) -> bool:
        return ticket_id in self.tentative

    def columns(self) -> Dict[str, List[Dict[str, Any]]]:
        cols: Dict[str, List[Dict[str, Any]]] = OrderedDict((c, []) for c in COLUMNS)
        for ticket_id in self.displayed:
            row = self.view(ticket_id)
            if row.get('won'):
                cols[WON_COLUMN].append(row)
                # A won ticket leaves the delivery column
                if row['status'] == Ticket.STATUS_DELIVERY:
                    continue
            if row['status'] in cols:
                cols[row['status']].append(row)
        return cols

    @staticmethod
    def required_for(target_column: str):
        """Fields a gated drop must collect before it can be submitted."""
        if target_column == WON_COLUMN:
            return ()
        return gate_for(target_column).required

    # -- moves --------------------------------------------------------------------- #
    def _begin(self, ticket_id: str, patch: Dict[str, Any]) -> TentativeMove:
        if self.is_pending(ticket_id):
            raise TransitionRejected('Another change for this ticket is still pending', reason='transition_pending')
        if ticket_id not in self.displayed:
            self.refresh()
        current = self.displayed.get(ticket_id)
        if current is None:
            raise TicketNotFound('Ticket not found')
        move = TentativeMove(ticket_id, patch, {k: current.get(k) for k in patch})
        self.tentative[ticket_id] = move
        self.displayed[ticket_id] = dict(current, **patch)
        return move

    def _commit(self, move: TentativeMove, row: Dict[str, Any]):
        self.tentative.pop(move.ticket_id, None)
        self.confirmed[row['id']] = row
        self.displayed[row['id']] = dict(row)

    def _rollback(self, move: TentativeMove):
        self.tentative.pop(move.ticket_id, None)
        row = self.displayed.get(move.ticket_id)
        if row is not None:
            self.displayed[move.ticket_id] = dict(row, **move.inverse)
        logger.info('board move on ticket %s rolled back', move.ticket_id)

    def _run(self, move: TentativeMove, call: Callable[[], Any], row_of: Callable[[Any], Dict[str, Any]]):
        committed = False
        try:
            result = call()
            self._commit(move, row_of(result))
            committed = True
        finally:
            if not committed:
                self._rollback(move)
        return result

    def drop(self, ticket_id: str, target_column: str, data: Optional[Dict[str, Any]] = None,
             staff_id: Optional[str] = None, actor_name: Optional[str] = None):
        """Move a card. Dropping on the won column marks a delivered ticket won."""
        if target_column == WON_COLUMN:
            move = self._begin(ticket_id, {'won': True})
            return self._run(move, lambda: self.engine.mark_won(ticket_id, staff_id), lambda row: row)
        move = self._begin(ticket_id, {'status': target_column})
        return self._run(
            move,
            lambda: self.engine.request_transition(ticket_id, target_column, data, actor_name=actor_name),
            lambda result: result.ticket,
        )


__all__ = ['KanbanBoard', 'TentativeMove', 'WON_COLUMN', 'COLUMNS']
