import logging
from datetime import datetime

from flask import Blueprint
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from taverna import db, APP_VERSION
from taverna.api_utils import api_success
from taverna.errors import error_response
from taverna.models import AppSetting

logger = logging.getLogger(__name__)

main_bp = Blueprint('main', __name__, url_prefix='/api')


@main_bp.route('/health')
def health():
    """Liveness check for load balancers. Also proves the database answers."""
    try:
        db.session.execute(text('SELECT 1'))
    except SQLAlchemyError:
        logger.exception('Health check: database unreachable')
        db.session.rollback()
        return error_response('Database connection failed', 503)

    return api_success({
        'status': 'ok',
        'version': APP_VERSION,
        'timestamp': datetime.utcnow().isoformat() + 'Z',
        'services': {'database': 'connected'},
        # Banner text admins set in the settings page; null when there is none
        'maintenanceMessage': AppSetting.get('maintenance_message') or None,
    })
