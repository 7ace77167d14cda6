"""Finite state machine utility for enforcing allowed status transitions.

Usage:
    from techservice.utils.fsm import TransitionValidator
    PIPELINE = TransitionValidator.linear(['accepted_pending', 'fault_diagnosis', 'delivery'])
    PIPELINE.assert_can_transition(current_status, target_status)

Raises TransitionRejected (409) carrying an explicit reason when the move is refused.
"""
from __future__ import annotations
from typing import Dict, Optional, Sequence, Set
from techservice.errors import TransitionRejected


class TransitionValidator:
    def __init__(self, graph: Dict[str, Set[str]], field_name: str = 'status'):
        self.graph = graph
        self.field_name = field_name

    @classmethod
    def linear(cls, stages: Sequence[str], field_name: str = 'status') -> 'TransitionValidator':
        """Forward-only pipeline: each stage may only advance to the next one."""
        graph = {stage: set() for stage in stages}
        for current, nxt in zip(stages, stages[1:]):
            graph[current].add(nxt)
        return cls(graph, field_name)

    def knows(self, status: str) -> bool:
        return status in self.graph

    def next_of(self, status: str) -> Optional[str]:
        """The single forward stage of a linear pipeline, None at the end."""
        targets = self.graph.get(status) or set()
        return next(iter(targets)) if len(targets) == 1 else None

    def assert_can_transition(self, current: str, target: str):
        if not self.knows(target):
            raise TransitionRejected(f"Unknown {self.field_name} {target}", reason='unknown_status')
        if current == target:
            raise TransitionRejected(f"{self.field_name} is already {target}", reason='already_in_status')
        if target not in self.graph.get(current, set()):
            raise TransitionRejected(
                f"Invalid {self.field_name} transition {current} -> {target}", reason='not_single_step'
            )
        return True


__all__ = ['TransitionValidator']
