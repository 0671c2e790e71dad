"""Middleware for authentication context."""
from functools import wraps
from flask import session, g

from docegestao.exceptions import UnauthorizedError


def load_user():
    """
    Load the logged-in operator into g (Flask's per-request global).

    Called before each request. Sets g.user to the username or None.
    """
    g.user = session.get('user')


def require_login(f):
    """
    Decorator: Require user to be logged in.

    Raises UnauthorizedError (401 JSON) when there is no session user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            raise UnauthorizedError()
        return f(*args, **kwargs)
    return decorated_function
