"""
Authentication service for shop operators.

Credentials are checked against the app_users table when the remote
backend is active, then against the configured fallback admin pair.
"""
import hmac
import logging

from sqlalchemy.exc import SQLAlchemyError

from docegestao.exceptions import BackendUnavailableError

logger = logging.getLogger(__name__)


def _matches_fallback(username, password, config) -> bool:
    expected_user = config.get('FALLBACK_ADMIN_USER') or ''
    expected_password = config.get('FALLBACK_ADMIN_PASSWORD') or ''
    if not expected_user or not expected_password:
        return False
    return (hmac.compare_digest(username.encode('utf-8'), expected_user.encode('utf-8'))
            and hmac.compare_digest(password.encode('utf-8'), expected_password.encode('utf-8')))


def _check_app_users(session_factory, username, password) -> bool:
    from docegestao.models import AppUser
    session = session_factory()
    try:
        user = session.query(AppUser).filter_by(username=username, active=True).first()
        return bool(user and user.check_password(password))
    finally:
        session_factory.remove()


def authenticate(username, password, config, session_factory=None) -> bool:
    """
    Check operator credentials.

    Args:
        username: Login name
        password: Plain password as typed
        config: Flask config mapping (fallback pair)
        session_factory: scoped_session of the remote backend, None in local mode

    Returns:
        True when app_users or the fallback pair accepts the credentials

    Raises:
        BackendUnavailableError: the app_users lookup failed and the
            fallback pair did not match either
    """
    username = (username or '').strip()
    password = password or ''
    if not username or not password:
        return False

    backend_error = None
    if session_factory is not None:
        try:
            if _check_app_users(session_factory, username, password):
                logger.info(f"[AUTH] ✓ Login for '{username}' (app_users)")
                return True
        except SQLAlchemyError as e:
            backend_error = e
            logger.error(f"[AUTH] ✗ app_users lookup failed: {e}")

    if _matches_fallback(username, password, config):
        logger.info(f"[AUTH] ✓ Login for '{username}' (fallback admin)")
        return True

    if backend_error is not None:
        raise BackendUnavailableError()

    logger.warning(f"[AUTH] Invalid credentials for '{username}'")
    return False


def create_app_user(session_factory, username, password, hashed=True):
    """Insert an operator into app_users (used by the CLI)."""
    from docegestao.models import AppUser
    session = session_factory()
    try:
        user = AppUser(username=username, active=True)
        if hashed:
            user.set_password(password)
        else:
            user.password = password
        session.add(user)
        session.commit()
        logger.info(f"[AUTH] ✓ Created app user '{username}'")
        return user
    except SQLAlchemyError:
        session.rollback()
        raise
    finally:
        session_factory.remove()
