from flask import Blueprint, request
from techservice import get_db
from techservice.decorators.auth import require_permissions
from techservice.decorators.audit import audit_log
from techservice.services.catalog import list_devices, create_device, delete_device
from techservice.services.store import RecordStore
from techservice.utils.listing import row_json

dev_bp = Blueprint('devices', __name__)


@dev_bp.get('')
@require_permissions('TKT.READ')
def get_devices():
    return {'data': row_json(list_devices(RecordStore(get_db())))}


@dev_bp.post('')
@require_permissions('ADMIN.DEVICE.MANAGE')
@audit_log('DEVICE.CREATE', entity='Device', entity_id_key='id', meta_keys=['device_type'])
def post_device():
    return row_json(create_device(RecordStore(get_db()), request.json or {})), 201


@dev_bp.delete('/<device_id>')
@require_permissions('ADMIN.DEVICE.MANAGE')
@audit_log('DEVICE.DELETE', entity='Device', entity_id_arg='device_id')
def remove_device(device_id: str):
    delete_device(RecordStore(get_db()), device_id)
    return {'success': True}
