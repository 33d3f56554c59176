"""HTTP basic authentication for broker endpoints."""

import hmac
import logging
from functools import wraps
from typing import Callable

from flask import current_app, jsonify, request

logger = logging.getLogger(__name__)


def _verify(username: str, password: str) -> bool:
    expected_username = current_app.config.get('BROKER_USERNAME') or ''
    expected_password = current_app.config.get('BROKER_PASSWORD') or ''
    username_ok = hmac.compare_digest(username.encode(), expected_username.encode())
    password_ok = hmac.compare_digest(password.encode(), expected_password.encode())
    return username_ok and password_ok


def auth_enabled() -> bool:
    return bool(current_app.config.get('BROKER_USERNAME') and current_app.config.get('BROKER_PASSWORD'))


def broker_auth_required(f: Callable) -> Callable:
    """Decorator to require the platform's broker credentials."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if auth_enabled():
            auth = request.authorization
            if not auth or not _verify(auth.username or '', auth.password or ''):
                logger.warning(f"Rejected unauthenticated broker request to {request.path}")
                response = jsonify({
                    'error': 'Unauthorized',
                    'description': 'Valid broker credentials are required'
                })
                response.status_code = 401
                response.headers['WWW-Authenticate'] = 'Basic realm="azure-blob-broker"'
                return response
        return f(*args, **kwargs)
    return decorated_function
