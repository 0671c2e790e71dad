"""Main blueprint: app shell state and health check endpoints."""
import os

from flask import Blueprint, jsonify, request, session, g, current_app
from flask_wtf.csrf import generate_csrf
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from docegestao.database import get_session
from docegestao.domain import AppView
from docegestao.exceptions import BusinessLogicError
from docegestao.middleware import require_login
from docegestao.services.data_service import get_data_service

main_bp = Blueprint('main', __name__)

VIEW_SESSION_KEY = 'view'


def current_view() -> AppView:
    try:
        return AppView(session.get(VIEW_SESSION_KEY, AppView.POS.value))
    except ValueError:
        return AppView.POS


@main_bp.route('/')
def index():
    """Shell state: active screen, backend mode, logged-in user and CSRF token."""
    return jsonify({
        'view': current_view().value,
        'views': [view.value for view in AppView],
        'backend': get_data_service().mode,
        'user': g.get('user'),
        'csrf_token': generate_csrf(),
    })


@main_bp.route('/view', methods=['POST'])
@require_login
def set_view():
    payload = request.get_json(silent=True) if request.is_json else request.form.to_dict()
    value = (payload or {}).get('view', '')
    try:
        view = AppView(value)
    except ValueError:
        raise BusinessLogicError(f'Tela inválida: {value}')
    session[VIEW_SESSION_KEY] = view.value
    return jsonify({'status': 'ok', 'view': view.value})


@main_bp.route('/health')
def health():
    """
    Health check endpoint.

    Remote mode runs SELECT 1 against the database; local mode checks that
    the storage directory is writable.

    Returns:
        200: Healthy
        500: Unhealthy
    """
    data_service = get_data_service()
    if not data_service.is_remote:
        storage_dir = current_app.config['LOCAL_STORAGE_DIR']
        if os.path.isdir(storage_dir) and os.access(storage_dir, os.W_OK):
            return jsonify({
                'status': 'healthy',
                'backend': 'local',
                'message': 'Local storage writable'
            }), 200
        return jsonify({
            'status': 'unhealthy',
            'backend': 'local',
            'message': 'Local storage directory is not writable'
        }), 500

    try:
        db_session = get_session()
        row = db_session.execute(text("SELECT 1 as health_check")).fetchone()
        if row and row[0] == 1:
            return jsonify({
                'status': 'healthy',
                'backend': 'remote',
                'database': 'connected',
                'message': 'Database connection successful'
            }), 200
        return jsonify({
            'status': 'unhealthy',
            'backend': 'remote',
            'database': 'error',
            'message': 'Unexpected query result'
        }), 500
    except SQLAlchemyError as e:
        current_app.logger.error(f"Health check failed: {e}")
        return jsonify({
            'status': 'unhealthy',
            'backend': 'remote',
            'database': 'disconnected',
            'error': str(e),
            'message': 'Failed to connect to database'
        }), 500
