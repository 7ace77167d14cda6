from __future__ import annotations
from typing import Any, Dict, List, Tuple
from techservice.errors import ValidationError


def build_filters(specs: Dict[str, Dict[str, Any]], params: Dict[str, Any]) -> List[Tuple[str, str, Any]]:
    """Translate query parameters into store filter tuples.

    specs: { param_name: { 'field': column (defaults to param_name), 'op': store op (default 'eq'),
                           'coerce': callable (optional), 'validate': callable (optional) } }
    Missing or empty parameters are skipped.
    """
    filters = []
    for name, meta in specs.items():
        val = params.get(name)
        if val is None or val == '':
            continue
        if 'coerce' in meta:
            try:
                val = meta['coerce'](val)
            except (TypeError, ValueError):
                raise ValidationError(fields={name: 'invalid'})
        if 'validate' in meta and not meta['validate'](val):
            raise ValidationError(fields={name: 'invalid'})
        filters.append((meta.get('field', name), meta.get('op', 'eq'), val))
    return filters
