from techservice.errors import TransitionRejected
from techservice.models.ticket import Ticket
from techservice.services.lifecycle import PIPELINE
from techservice.utils.fsm import TransitionValidator
import pytest


def test_transition_validator_allows_valid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    assert fsm.assert_can_transition('A', 'B') is True


def test_transition_validator_blocks_invalid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    with pytest.raises(TransitionRejected) as exc:
        fsm.assert_can_transition('A', 'C')
    assert exc.value.reason == 'unknown_status'
    assert exc.value.code == 409


def test_linear_pipeline_only_accepts_next_stage():
    stages = Ticket.ALL_STATUSES
    for i, current in enumerate(stages):
        for j, target in enumerate(stages):
            if j == i + 1:
                assert PIPELINE.assert_can_transition(current, target) is True
                continue
            with pytest.raises(TransitionRejected) as exc:
                PIPELINE.assert_can_transition(current, target)
            expected = 'already_in_status' if i == j else 'not_single_step'
            assert exc.value.reason == expected, (current, target)


def test_won_is_not_a_status():
    with pytest.raises(TransitionRejected) as exc:
        PIPELINE.assert_can_transition(Ticket.STATUS_DELIVERY, 'won')
    assert exc.value.reason == 'unknown_status'


def test_next_of():
    assert PIPELINE.next_of(Ticket.STATUS_ACCEPTED_PENDING) == Ticket.STATUS_FAULT_DIAGNOSIS
    assert PIPELINE.next_of(Ticket.STATUS_INVOICING) == Ticket.STATUS_DELIVERY
    assert PIPELINE.next_of(Ticket.STATUS_DELIVERY) is None
