import pytest
from techservice import get_db
from techservice.errors import StoreFailure, TransitionRejected, ValidationError
from techservice.models.ticket import Ticket
from techservice.services.board import KanbanBoard, WON_COLUMN
from techservice.services.lifecycle import PendingTransitions, TransitionEngine
from techservice.services.store import RecordStore
from tests.test_lifecycle_helpers import GATE_DATA
from tests.test_utils_seed import ensure_technician, insert_ticket, unique


class UpdateFailingStore(RecordStore):
    def update(self, table, id, patch):
        raise StoreFailure('update on tickets failed')


def _board(store=None):
    engine = TransitionEngine(store or RecordStore(get_db()), pending=PendingTransitions())
    return KanbanBoard(engine).refresh()


def _ids(column):
    return [t['id'] for t in column]


def test_columns_split_delivery_and_won(app_context):
    tech = ensure_technician(unique('board'))
    delivered = insert_ticket('delivered', status=Ticket.STATUS_DELIVERY)
    won = insert_ticket('won', status=Ticket.STATUS_DELIVERY, won=True, assigned_to=tech.id)
    board = _board()
    cols = board.columns()
    assert list(cols) == list(Ticket.ALL_STATUSES) + [WON_COLUMN]
    assert delivered.id in _ids(cols[Ticket.STATUS_DELIVERY])
    assert won.id not in _ids(cols[Ticket.STATUS_DELIVERY])
    assert won.id in _ids(cols[WON_COLUMN])


def test_successful_drop_updates_confirmed(app_context):
    t = insert_ticket('drop ok')
    board = _board()
    result = board.drop(t.id, Ticket.STATUS_FAULT_DIAGNOSIS, GATE_DATA[Ticket.STATUS_FAULT_DIAGNOSIS])
    assert result.ticket['status'] == Ticket.STATUS_FAULT_DIAGNOSIS
    assert board.confirmed[t.id]['status'] == Ticket.STATUS_FAULT_DIAGNOSIS
    assert not board.is_pending(t.id)


def test_failed_drop_rolls_back(app_context):
    t = insert_ticket('drop fails')
    board = _board(UpdateFailingStore(get_db()))
    with pytest.raises(StoreFailure):
        board.drop(t.id, Ticket.STATUS_FAULT_DIAGNOSIS, GATE_DATA[Ticket.STATUS_FAULT_DIAGNOSIS])
    assert board.view(t.id)['status'] == Ticket.STATUS_ACCEPTED_PENDING
    assert not board.is_pending(t.id)
    assert t.id in _ids(board.columns()[Ticket.STATUS_ACCEPTED_PENDING])


def test_gate_rejection_rolls_back(app_context):
    t = insert_ticket('gate', status=Ticket.STATUS_FAULT_DIAGNOSIS)
    board = _board()
    assert board.required_for(Ticket.STATUS_CUSTOMER_APPROVAL) == ('approved_labor_cost', 'approved_service_cost')
    with pytest.raises(ValidationError):
        board.drop(t.id, Ticket.STATUS_CUSTOMER_APPROVAL, {'approved_labor_cost': '10'})
    assert board.view(t.id)['status'] == Ticket.STATUS_FAULT_DIAGNOSIS


def test_pending_ticket_is_disabled(app_context):
    t = insert_ticket('busy')
    board = _board()
    board._begin(t.id, {'status': Ticket.STATUS_FAULT_DIAGNOSIS})
    assert board.is_pending(t.id)
    assert board.view(t.id)['status'] == Ticket.STATUS_FAULT_DIAGNOSIS
    assert board.confirmed[t.id]['status'] == Ticket.STATUS_ACCEPTED_PENDING
    with pytest.raises(TransitionRejected) as exc:
        board.drop(t.id, Ticket.STATUS_FAULT_DIAGNOSIS, GATE_DATA[Ticket.STATUS_FAULT_DIAGNOSIS])
    assert exc.value.reason == 'transition_pending'


def test_won_drop_refreshes_board(app_context):
    tech = ensure_technician(unique('winner'))
    t = insert_ticket('to win', status=Ticket.STATUS_DELIVERY)
    board = _board()
    other = insert_ticket('created elsewhere')
    assert other.id not in board.confirmed
    row = board.drop(t.id, WON_COLUMN, staff_id=tech.id)
    assert row['won'] is True
    # the won notification reloads the whole board
    assert other.id in board.confirmed
    assert t.id in _ids(board.columns()[WON_COLUMN])
    assert t.id not in _ids(board.columns()[Ticket.STATUS_DELIVERY])


def test_won_drop_without_staff_rolls_back(app_context):
    t = insert_ticket('no staff', status=Ticket.STATUS_DELIVERY)
    board = _board()
    with pytest.raises(TransitionRejected):
        board.drop(t.id, WON_COLUMN)
    assert board.view(t.id)['won'] is False
    assert t.id in _ids(board.columns()[Ticket.STATUS_DELIVERY])


def test_unexpected_error_still_releases_ticket(app_context):
    t = insert_ticket('bad payload', status=Ticket.STATUS_FAULT_DIAGNOSIS)
    board = _board()
    with pytest.raises(AttributeError):
        board.drop(t.id, Ticket.STATUS_CUSTOMER_APPROVAL, ['not', 'a', 'dict'])
    assert not board.is_pending(t.id)
    assert board.view(t.id)['status'] == Ticket.STATUS_FAULT_DIAGNOSIS
    result = board.drop(t.id, Ticket.STATUS_CUSTOMER_APPROVAL, GATE_DATA[Ticket.STATUS_CUSTOMER_APPROVAL])
    assert result.ticket['status'] == Ticket.STATUS_CUSTOMER_APPROVAL


def test_move_shows_immediately_and_inverse_restores_display(app_context):
    t = insert_ticket('optimistic')
    board = _board()
    move = board._begin(t.id, {'status': Ticket.STATUS_FAULT_DIAGNOSIS})
    assert move.inverse == {'status': Ticket.STATUS_ACCEPTED_PENDING}
    assert t.id in _ids(board.columns()[Ticket.STATUS_FAULT_DIAGNOSIS])
    assert board.confirmed[t.id]['status'] == Ticket.STATUS_ACCEPTED_PENDING
    board._rollback(move)
    assert board.view(t.id)['status'] == Ticket.STATUS_ACCEPTED_PENDING
    assert t.id in _ids(board.columns()[Ticket.STATUS_ACCEPTED_PENDING])
    assert not board.is_pending(t.id)
