"""
Authentication blueprint.
Handles operator login and logout.
"""
import logging

from flask import Blueprint, current_app, g, jsonify, request, session

from docegestao import database
from docegestao.exceptions import BusinessLogicError, UnauthorizedError
from docegestao.services.auth_service import authenticate
from docegestao.services.data_service import get_data_service

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)

INVALID_CREDENTIALS_MESSAGE = 'Usuário ou senha incorretos.'


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    """GET reports the session user; POST validates username + password."""
    if request.method == 'GET':
        return jsonify({'authenticated': g.get('user') is not None, 'user': g.get('user')})

    payload = request.get_json(silent=True) if request.is_json else request.form.to_dict()
    payload = payload or {}
    username = str(payload.get('username') or '').strip()
    password = str(payload.get('password') or '')

    if not username or not password:
        raise BusinessLogicError('Usuário e senha são obrigatórios.')

    session_factory = database.get_session() if get_data_service().is_remote else None
    # BackendUnavailableError propagates to the JSON error handler (503)
    if not authenticate(username, password, current_app.config, session_factory=session_factory):
        raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)

    session.clear()
    session['user'] = username
    session.permanent = True
    return jsonify({'status': 'ok', 'user': username})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Clear the session (cart and active screen included)."""
    session.clear()
    return jsonify({'status': 'ok'})
