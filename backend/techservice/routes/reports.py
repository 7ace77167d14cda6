from flask import Blueprint, request
from techservice import get_db
from techservice.decorators.auth import require_permissions
from techservice.services import reports
from techservice.services.policy import assert_self_or_admin
from techservice.services.store import RecordStore
from techservice.utils.listing import row_json

rpt_bp = Blueprint('reports', __name__)


def _store():
    return RecordStore(get_db())


@rpt_bp.get('/analytics')
@require_permissions('RPT.READ')
def company_analytics():
    return row_json(reports.company_analytics(_store(), request.args.get('range') or '30d'))


@rpt_bp.get('/staff/<staff_id>/monthly')
@require_permissions('RPT.STAFF')
def staff_monthly(staff_id: str):
    assert_self_or_admin(staff_id)
    return row_json(reports.staff_monthly(_store(), staff_id))


@rpt_bp.get('/activity')
@require_permissions('RPT.READ')
def activity():
    args = request.args
    return row_json(reports.activity_report(
        _store(), args.get('technician_id'), args.get('start_date'), args.get('end_date'),
    ))


@rpt_bp.get('/won')
@require_permissions('RPT.READ')
def won():
    return row_json(reports.won_report(_store(), request.args.get('q')))


@rpt_bp.get('/customers')
@require_permissions('RPT.READ')
def customers():
    return {'data': row_json(reports.customer_directory(_store(), request.args.get('q')))}
