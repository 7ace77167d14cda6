"""Read-only report queries.

Each report fetches what it needs from the record store and recomputes on demand; the
aggregation rules live in ``techservice.services.analytics``.
"""
from __future__ import annotations
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional
from techservice.errors import ValidationError
from techservice.services import analytics
from techservice.utils.clock import as_utc, utcnow

ACTIVITY_DEFAULT_DAYS = 30

CUSTOMER_FIELDS = (
    'customer_full_name', 'customer_phone', 'customer_extension', 'customer_email', 'customer_address',
    'billing_company_name', 'billing_address', 'billing_tax_office', 'billing_tax_number',
)
# Refreshed from the newest ticket when present there
CUSTOMER_LATEST_FIELDS = (
    'customer_address', 'billing_company_name', 'billing_address', 'billing_tax_office', 'billing_tax_number',
)


def _technicians(store) -> List[Dict[str, Any]]:
    return store.select('technicians', order=[('name', 'asc')])


def company_analytics(store, range_key: str = '30d', now: Optional[datetime] = None) -> Dict[str, Any]:
    if range_key not in analytics.RANGE_KEYS:
        raise ValidationError(fields={'range': f"must be one of {', '.join(analytics.RANGE_KEYS)}"})
    now = as_utc(now) if now else utcnow()
    filters = []
    start = analytics.range_start(range_key, now)
    if start is not None:
        prev_start, _ = analytics.previous_window(start, now)
        filters.append(('created_at', 'gte', prev_start))
    tickets = store.select('tickets', filters, order=[('created_at', 'desc')])
    return analytics.company_summary(tickets, _technicians(store), range_key, now)


def staff_monthly(store, staff_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = as_utc(now) if now else utcnow()
    prev_start, _ = analytics.month_range(now, 1)
    _, cur_end = analytics.month_range(now, 0)
    tickets = store.select('tickets', [
        ('assigned_to', 'eq', staff_id),
        ('won', 'eq', True),
        ('won_at', 'not_null', None),
        ('won_at', 'gte', prev_start),
        ('won_at', 'lte', cur_end),
    ])
    return analytics.staff_monthly_summary(tickets, staff_id, now)


def _parse_day(value: Optional[str], field_name: str) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(fields={field_name: 'expected YYYY-MM-DD'})


def activity_report(store, technician_id: Optional[str] = None, start_date: Optional[str] = None,
                    end_date: Optional[str] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Tickets touched (updated_at) between two whole days, optionally for one technician."""
    now = as_utc(now) if now else utcnow()
    end_day = _parse_day(end_date, 'end_date') or now.date()
    start_day = _parse_day(start_date, 'start_date') or (now - timedelta(days=ACTIVITY_DEFAULT_DAYS)).date()
    if start_day > end_day:
        raise ValidationError(fields={'start_date': 'must not be after end_date'})
    window_start = datetime.combine(start_day, time.min, tzinfo=timezone.utc)
    window_end = datetime.combine(end_day, time.max, tzinfo=timezone.utc)
    filters = [('updated_at', 'gte', window_start), ('updated_at', 'lte', window_end)]
    if technician_id and technician_id != 'all':
        filters.append(('assigned_to', 'eq', technician_id))
    tickets = store.select('tickets', filters, order=[('updated_at', 'desc')])
    completed = [t for t in tickets if analytics.is_completed_by_status(t)]
    revenue = analytics.revenue_of(completed)
    return {
        'technician_id': technician_id if technician_id and technician_id != 'all' else None,
        'start_date': start_day.isoformat(),
        'end_date': end_day.isoformat(),
        'tickets': tickets,
        'total_tickets': len(tickets),
        'completed_tickets': len(completed),
        'total_revenue': revenue,
        'avg_ticket_value': analytics.average(revenue, len(completed)),
        'status_breakdown': [row for row in analytics.status_distribution(tickets) if row['count']],
    }


def _matches(term: str, *values) -> bool:
    return any(term in (v or '').lower() for v in values)


def won_report(store, search: Optional[str] = None) -> Dict[str, Any]:
    """Won tickets not hidden from the report, newest win first."""
    tickets = store.select('tickets', [
        ('won', 'eq', True),
        ('won_hidden', 'not_true', None),
    ], order=[('won_at', 'desc')])
    names = {t['id']: t['name'] for t in _technicians(store)}
    for t in tickets:
        t['technician_name'] = names.get(t.get('assigned_to'))
    if search:
        term = search.strip().lower()
        tickets = [
            t for t in tickets
            if _matches(term, t.get('title'), t.get('customer_full_name'), t.get('serial_number'), t.get('technician_name'))
        ]
    return {
        'tickets': tickets,
        'total_won': len(tickets),
        'total_revenue': analytics.revenue_of(tickets),
    }


def customer_directory(store, search: Optional[str] = None) -> List[Dict[str, Any]]:
    """Distinct customers seen on ticket snapshots, most recent first.

    Customers are keyed on name + phone + email (case-insensitive).
    """
    rows = store.select('tickets', [('customer_full_name', 'not_null', None)], order=[('created_at', 'desc')])
    customers: Dict[str, Dict[str, Any]] = {}
    for t in rows:
        key = '-'.join((t.get(k) or '') for k in ('customer_full_name', 'customer_phone', 'customer_email')).lower()
        if not key.strip() or key == '--':
            continue
        existing = customers.get(key)
        if existing is None:
            record = {k: t.get(k) for k in CUSTOMER_FIELDS}
            record.update({'ticket_count': 1, 'last_ticket_date': t['created_at']})
            customers[key] = record
            continue
        existing['ticket_count'] += 1
        if as_utc(t['created_at']) > as_utc(existing['last_ticket_date']):
            existing['last_ticket_date'] = t['created_at']
            for k in CUSTOMER_LATEST_FIELDS:
                if t.get(k):
                    existing[k] = t[k]
    result = sorted(customers.values(), key=lambda c: as_utc(c['last_ticket_date']), reverse=True)
    if search:
        term = search.strip().lower()
        result = [
            c for c in result
            if _matches(term, c['customer_full_name'], c['customer_phone'], c['customer_email'],
                        c['billing_company_name'], c['customer_address'])
        ]
    return result


__all__ = ['company_analytics', 'staff_monthly', 'activity_report', 'won_report', 'customer_directory']
