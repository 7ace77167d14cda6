"""List/item responses with ETag and Last-Modified conditional caching."""
from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from flask import request, make_response, jsonify, current_app
from techservice.config.pagination import normalize_pagination, DEFAULT_LIMIT, MAX_LIMIT
from techservice.utils.clock import as_utc, isoformat_z
import hashlib
from datetime import datetime, timedelta
from email.utils import parsedate_to_datetime, format_datetime

TIMESTAMP_TOLERANCE = timedelta(seconds=1)


def canonicalize_timestamp(dt: datetime) -> datetime:
    """Return UTC tz-aware timestamp truncated to whole seconds (microseconds removed)."""
    return as_utc(dt).replace(microsecond=0)


def request_pagination() -> Tuple[int, int]:
    return normalize_pagination(
        request.args.get('limit'),
        request.args.get('offset'),
        current_app.config.get('PAGINATION_DEFAULT_LIMIT', DEFAULT_LIMIT),
        current_app.config.get('PAGINATION_MAX_LIMIT', MAX_LIMIT),
    )


def paginate(store, table: str, filters: Sequence = (), order: Sequence = (), search=None):
    """Run a paged select; returns (rows, total, limit, offset)."""
    limit, offset = request_pagination()
    total = store.count(table, filters, search=search)
    rows = store.select(table, filters, order=order, limit=limit, offset=offset, search=search)
    return rows, total, limit, offset


def latest_timestamp(rows: Iterable[Dict[str, Any]], field: str = 'updated_at') -> Optional[datetime]:
    stamps = [as_utc(r[field]) for r in rows if r.get(field)]
    return max(stamps) if stamps else None


def compute_etag(ids: Iterable[Any], total: int, limit: int, offset: int, latest_ts: Optional[str] = '') -> str:
    seed = f"{list(ids)}|{total}|{limit}|{offset}|{latest_ts or ''}"
    return hashlib.sha256(seed.encode()).hexdigest()[:32]


def build_list_payload(rows: list, total: int, limit: int, offset: int):
    return {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }


def _http_date(dt: datetime) -> str:
    """RFC1123 HTTP-date in GMT."""
    return format_datetime(dt, usegmt=True)


def _stamp_headers(resp, etag: str, latest_ts: Optional[datetime]):
    resp.headers['ETag'] = etag
    if latest_ts:
        latest_c = canonicalize_timestamp(latest_ts)
        resp.headers['Last-Modified'] = _http_date(latest_c)
        # Canonical ISO form for clients that prefer it
        resp.headers['X-Last-Modified-ISO'] = isoformat_z(latest_c)
    return resp


def make_cached_list_response(rows: List[Dict[str, Any]], total: int, limit: int, offset: int,
                              latest_ts: Optional[datetime] = None):
    ids = [r.get('id') for r in rows]
    latest_iso = isoformat_z(latest_ts) if latest_ts else ''
    etag = compute_etag(ids, total, limit, offset, latest_iso)
    resp = make_response(jsonify(build_list_payload(rows, total, limit, offset)))
    return _stamp_headers(resp, etag, latest_ts), etag


def _parse_if_modified_since(header_val: str) -> Optional[datetime]:
    if not header_val:
        return None
    try:
        return as_utc(datetime.fromisoformat(header_val.replace('Z', '+00:00')))
    except ValueError:
        pass
    try:
        dt = parsedate_to_datetime(header_val)
    except (TypeError, ValueError):
        return None
    return as_utc(dt) if dt else None


def handle_conditional(etag_value: str, latest_ts: Optional[datetime]):
    """Evaluate conditional request headers.

    If-None-Match takes precedence over If-Modified-Since. Returns a 304 response when
    the client copy is current, else None.
    """
    inm = request.headers.get('If-None-Match')
    if inm:
        # A validator mismatch is final; If-Modified-Since is not consulted
        if inm.strip('"') == etag_value:
            return _stamp_headers(make_response('', 304), etag_value, latest_ts)
        return None
    ims_raw = request.headers.get('If-Modified-Since')
    if ims_raw and latest_ts:
        ims_dt = _parse_if_modified_since(ims_raw)
        if ims_dt and canonicalize_timestamp(latest_ts) <= canonicalize_timestamp(ims_dt) + TIMESTAMP_TOLERANCE:
            return _stamp_headers(make_response('', 304), etag_value, latest_ts)
    return None


def cached_list(rows: List[Dict[str, Any]], total: int, limit: int, offset: int,
                latest_ts: Optional[datetime], head: bool = False):
    """Full list response honouring conditional headers; body dropped for HEAD."""
    resp, etag = make_cached_list_response(rows, total, limit, offset, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        cond.set_data(b'')
        return cond
    if head:
        resp.set_data(b'')
    return resp


def cached_item(body: Dict[str, Any], latest_ts: Optional[datetime], ids: Optional[List[Any]] = None):
    """Single resource response. ``ids`` names every row folded into the body (defaults to the body id)."""
    ids = ids or [body.get('id')]
    latest_iso = isoformat_z(latest_ts) if latest_ts else ''
    etag = compute_etag(ids, len(ids), 1, 0, latest_iso)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        cond.set_data(b'')
        return cond
    resp = _stamp_headers(make_response(jsonify(body)), etag, latest_ts)
    if request.method == 'HEAD':
        resp.set_data(b'')
    return resp


def row_json(value):
    """Render store rows (and nested report payloads) with ISO-8601 Z datetimes."""
    if isinstance(value, datetime):
        return isoformat_z(value)
    if isinstance(value, dict):
        return {k: row_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [row_json(v) for v in value]
    return value
