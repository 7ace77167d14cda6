from __future__ import annotations
from typing import Any, Dict, List
from techservice.errors import NotFoundError
from techservice.utils.clock import utcnow
from techservice.utils.validation import require_text


def list_devices(store) -> List[Dict[str, Any]]:
    return store.select('devices', order=[('device_type', 'asc')])


def create_device(store, data: Dict[str, Any]) -> Dict[str, Any]:
    device_type = require_text(data.get('device_type'), 'device_type')
    return store.insert('devices', {'device_type': device_type, 'created_at': utcnow()})


def delete_device(store, device_id: str):
    if not store.delete('devices', device_id):
        raise NotFoundError('Device not found')
