from __future__ import annotations
from typing import Iterable, List, Optional, Tuple
from techservice.errors import ValidationError


def parse_sort(sort_expr: Optional[str], allowed: Iterable[str], tie_breaker: str = 'id',
               default: Optional[List[Tuple[str, str]]] = None) -> List[Tuple[str, str]]:
    """Turn ``-updated_at,title`` into a store ``order`` list.

    Each token may be prefixed with '-' for descending. ``tie_breaker`` is appended so
    paging stays deterministic.
    """
    allowed = set(allowed)
    order: List[Tuple[str, str]] = []
    if not sort_expr:
        order = list(default or [])
    else:
        for raw in sort_expr.split(','):
            token = raw.strip()
            if not token:
                continue
            desc = token.startswith('-')
            key = token[1:] if desc else token
            if key not in allowed:
                raise ValidationError(fields={'sort': f'Invalid sort field {key}'})
            order.append((key, 'desc' if desc else 'asc'))
    if tie_breaker not in (f for f, _ in order):
        order.append((tie_breaker, 'asc'))
    return order
