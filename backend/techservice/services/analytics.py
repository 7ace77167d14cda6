"""Revenue and volume metrics derived from ticket rows.

Two different notions of a "completed" ticket are used and must stay separate:

* company-wide analytics and the activity report count tickets whose *status* is
  ``delivery`` (revenue recognised by pipeline stage);
* per-staff monthly analytics count tickets *won* by that staff member inside the
  month (revenue won by this person).

Money: ``total_service_amount`` of NULL counts as 0; averages divide by the number of
counted tickets, including those with no amount.
"""
from __future__ import annotations
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple
from techservice.models.ticket import Ticket
from techservice.utils.clock import as_utc

RANGE_KEYS = ('7d', '30d', '90d', '12m', 'all')
UNASSIGNED = 'unassigned'


# ---------------- Predicates ---------------- #
def is_completed_by_status(ticket: Dict[str, Any]) -> bool:
    """Company-wide definition: the ticket has reached the delivery stage."""
    return ticket.get('status') == Ticket.STATUS_DELIVERY


def is_won_by_staff_in_window(ticket: Dict[str, Any], staff_id: str, start: datetime, end: datetime) -> bool:
    """Per-staff definition: won, dated, won inside [start, end], attributed to staff_id."""
    if ticket.get('won') is not True:
        return False
    won_at = as_utc(ticket.get('won_at'))
    if won_at is None:
        return False
    if ticket.get('assigned_to') != staff_id:
        return False
    return as_utc(start) <= won_at <= as_utc(end)


# ---------------- Helpers ---------------- #
def amount(ticket: Dict[str, Any]) -> float:
    return float(ticket.get('total_service_amount') or 0)


def revenue_of(tickets: Iterable[Dict[str, Any]]) -> float:
    return sum(amount(t) for t in tickets)


def average(total: float, count: int) -> float:
    return total / count if count else 0.0


def percent_change(current: float, previous: float) -> Optional[float]:
    """Company comparison: None when there is no previous value to compare against."""
    if not previous:
        return None
    return (current - previous) / previous * 100


def range_start(range_key: str, now: datetime) -> Optional[datetime]:
    """Start of a trailing window ending at ``now``; None for ``all``."""
    now = as_utc(now)
    if range_key == '7d':
        return now - timedelta(days=7)
    if range_key == '30d':
        return now - timedelta(days=30)
    if range_key == '90d':
        return now - timedelta(days=90)
    if range_key == '12m':
        try:
            return now.replace(year=now.year - 1)
        except ValueError:  # Feb 29
            return now.replace(year=now.year - 1, day=28)
    if range_key == 'all':
        return None
    raise ValueError(f'unknown range {range_key}')


def previous_window(start: datetime, now: datetime) -> Tuple[datetime, datetime]:
    """Equal-length window immediately before ``start``: [start - (now - start), start)."""
    start, now = as_utc(start), as_utc(now)
    return start - (now - start), start


def month_range(now: datetime, month_offset: int = 0) -> Tuple[datetime, datetime]:
    """First instant and last instant of the calendar month ``month_offset`` months back."""
    now = as_utc(now)
    index = now.year * 12 + (now.month - 1) - month_offset
    year, month = divmod(index, 12)
    start = now.replace(year=year, month=month + 1, day=1, hour=0, minute=0, second=0, microsecond=0)
    next_index = index + 1
    next_year, next_month = divmod(next_index, 12)
    next_start = start.replace(year=next_year, month=next_month + 1)
    return start, next_start - timedelta(microseconds=1)


def status_distribution(tickets: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Count per status (pipeline order, zero rows included) with percentage of total."""
    total = len(tickets)
    counts = {status: 0 for status in Ticket.ALL_STATUSES}
    for t in tickets:
        counts[t.get('status')] = counts.get(t.get('status'), 0) + 1
    return [
        {'status': status, 'count': count, 'percentage': (count / total * 100) if total else 0.0}
        for status, count in counts.items()
    ]


# ---------------- Company-wide ---------------- #
def technician_ranking(completed: List[Dict[str, Any]], technicians: Iterable[Dict[str, Any]]):
    """Group completed tickets by assignee, highest revenue first.

    Returns (ranking, unassigned bucket). Tickets assigned to an id that is no longer in
    the technician list still rank, with a null name.
    """
    names = {t['id']: t for t in technicians}
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    unassigned: List[Dict[str, Any]] = []
    for t in completed:
        if t.get('assigned_to'):
            grouped.setdefault(t['assigned_to'], []).append(t)
        else:
            unassigned.append(t)
    ranking = []
    for tech_id, rows in grouped.items():
        total = revenue_of(rows)
        tech = names.get(tech_id) or {}
        ranking.append({
            'technician_id': tech_id,
            'name': tech.get('name'),
            'avatar_color': tech.get('avatar_color'),
            'total_revenue': total,
            'ticket_count': len(rows),
            'avg_ticket_value': average(total, len(rows)),
        })
    ranking.sort(key=lambda r: (-r['total_revenue'], r['name'] or '', r['technician_id']))
    unassigned_total = revenue_of(unassigned)
    bucket = {
        'technician_id': None,
        'name': UNASSIGNED,
        'total_revenue': unassigned_total,
        'ticket_count': len(unassigned),
        'avg_ticket_value': average(unassigned_total, len(unassigned)),
    }
    return ranking, bucket


def company_summary(tickets: List[Dict[str, Any]], technicians: Iterable[Dict[str, Any]],
                    range_key: str, now: datetime) -> Dict[str, Any]:
    """Company analytics over tickets created inside the selected trailing window."""
    start = range_start(range_key, now)
    if start is None:
        in_window = list(tickets)
    else:
        in_window = [t for t in tickets if as_utc(t['created_at']) >= start]
    completed = [t for t in in_window if is_completed_by_status(t)]
    total_revenue = revenue_of(completed)

    previous_revenue = None
    revenue_change = None
    if start is not None:
        prev_start, prev_end = previous_window(start, now)
        previous = [
            t for t in tickets
            if prev_start <= as_utc(t['created_at']) < prev_end and is_completed_by_status(t)
        ]
        previous_revenue = revenue_of(previous)
        revenue_change = percent_change(total_revenue, previous_revenue)

    ranking, unassigned = technician_ranking(completed, technicians)
    return {
        'range': range_key,
        'window_start': start,
        'total_revenue': total_revenue,
        'total_tickets': len(in_window),
        'completed_count': len(completed),
        'avg_ticket_value': average(total_revenue, len(completed)),
        'previous_revenue': previous_revenue,
        'revenue_change': revenue_change,
        'technicians': ranking,
        'unassigned': unassigned,
        'status_distribution': status_distribution(in_window),
    }


# ---------------- Per-staff monthly ---------------- #
def staff_change(current: float, previous: float) -> int:
    """Month-over-month change, rounded; growth from zero counts as +100."""
    if previous == 0:
        return 100 if current > 0 else 0
    return round((current - previous) / previous * 100)


def _month_metrics(tickets: List[Dict[str, Any]]) -> Dict[str, Any]:
    durations = [
        (as_utc(t['won_at']) - as_utc(t['created_at'])).total_seconds()
        for t in tickets
    ]
    return {
        'revenue': revenue_of(tickets),
        'machines': len(tickets),
        'avg_repair_seconds': average(sum(durations), len(durations)),
    }


def staff_monthly_summary(tickets: List[Dict[str, Any]], staff_id: str, now: datetime) -> Dict[str, Any]:
    cur_start, cur_end = month_range(now, 0)
    prev_start, prev_end = month_range(now, 1)
    current = _month_metrics([t for t in tickets if is_won_by_staff_in_window(t, staff_id, cur_start, cur_end)])
    previous = _month_metrics([t for t in tickets if is_won_by_staff_in_window(t, staff_id, prev_start, prev_end)])
    duration_change = staff_change(current['avg_repair_seconds'], previous['avg_repair_seconds'])
    return {
        'staff_id': staff_id,
        'current_month': dict(current, start=cur_start, end=cur_end),
        'previous_month': dict(previous, start=prev_start, end=prev_end),
        'revenue_change': staff_change(current['revenue'], previous['revenue']),
        'machines_change': staff_change(current['machines'], previous['machines']),
        'duration_change': duration_change,
        # Shorter repairs are the good direction for duration
        'faster': current['machines'] > 0 and previous['machines'] > 0 and duration_change < 0,
    }


__all__ = [
    'RANGE_KEYS', 'is_completed_by_status', 'is_won_by_staff_in_window', 'revenue_of', 'average',
    'percent_change', 'range_start', 'previous_window', 'month_range', 'status_distribution',
    'technician_ranking', 'company_summary', 'staff_change', 'staff_monthly_summary',
]
