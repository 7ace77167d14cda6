from flask import Blueprint, request, current_app
from flask_jwt_extended import create_access_token, jwt_required, get_jwt_identity, get_jwt
from techservice import get_db
from techservice.constants.permissions import permissions_for
from techservice.decorators.auth import require_permissions
from techservice.decorators.audit import audit_log
from techservice.errors import NotFoundError
from techservice.models.accounts import AdminUser, Technician
from techservice.services.accounts import authenticate, set_password, admin_profile, staff_profile

auth_bp = Blueprint('auth', __name__)


@auth_bp.post('/login')
def login():
    data = request.json or {}
    user_type = data.get('userType') or data.get('user_type')
    credential = data.get('credential') or data.get('email') or data.get('username')
    profile = authenticate(get_db(), credential, data.get('password'), user_type)
    claims = {
        'user_type': profile['type'],
        'name': profile['name'],
        'perms': permissions_for(profile['type']),
    }
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    token = create_access_token(identity=str(profile['id']), additional_claims=claims)
    current_app.logger.info('%s %s logged in', profile['type'], profile['id'])
    return {'access_token': token, 'user': profile}


@auth_bp.post('/set-password')
@require_permissions('ADMIN.STAFF.MANAGE')
@audit_log('STAFF.PASSWORD.SET', entity='Technician', entity_id_key='id')
def set_staff_password():
    data = request.json or {}
    tech = set_password(
        get_db(),
        data.get('technicianId') or data.get('technician_id'),
        data.get('password'),
        current_app.config['PASSWORD_MIN_LENGTH'],
    )
    return {'id': tech.id, 'success': True}


@auth_bp.get('/me')
@jwt_required()
def me():
    identity = get_jwt_identity()
    user_type = get_jwt().get('user_type')
    session = get_db()
    if user_type == 'admin':
        user = session.get(AdminUser, identity)
        if not user:
            raise NotFoundError('User not found')
        profile = admin_profile(user)
    else:
        tech = session.get(Technician, identity)
        if not tech:
            raise NotFoundError('User not found')
        profile = staff_profile(tech)
    profile['perms'] = get_jwt().get('perms', [])
    return profile
