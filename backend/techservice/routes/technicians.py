from flask import Blueprint, request, current_app
from techservice import get_db
from techservice.decorators.auth import require_permissions
from techservice.decorators.audit import audit_log
from techservice.services.accounts import (
    create_technician, delete_technician, list_technicians, set_credentials, technician_json,
)

tech_bp = Blueprint('technicians', __name__)


@tech_bp.get('')
@require_permissions('TKT.READ')
def get_technicians():
    active_only = request.args.get('active', '').lower() in ('1', 'true')
    return {'data': [technician_json(t) for t in list_technicians(get_db(), active_only=active_only)]}


@tech_bp.post('')
@require_permissions('ADMIN.STAFF.MANAGE')
@audit_log('STAFF.CREATE', entity='Technician', entity_id_key='id', meta_keys=['name', 'username'])
def post_technician():
    tech = create_technician(get_db(), request.json or {}, current_app.config['PASSWORD_MIN_LENGTH'])
    return technician_json(tech), 201


@tech_bp.put('/<technician_id>/credentials')
@require_permissions('ADMIN.STAFF.MANAGE')
@audit_log('STAFF.CREDENTIALS', entity='Technician', entity_id_key='id', meta_keys=['username'])
def put_credentials(technician_id: str):
    data = request.json or {}
    tech = set_credentials(
        get_db(), technician_id, data.get('username'), data.get('password'),
        current_app.config['PASSWORD_MIN_LENGTH'],
    )
    return technician_json(tech)


@tech_bp.delete('/<technician_id>')
@require_permissions('ADMIN.STAFF.MANAGE')
@audit_log('STAFF.DELETE', entity='Technician', entity_id_arg='technician_id')
def remove_technician(technician_id: str):
    delete_technician(get_db(), technician_id)
    return {'success': True}
