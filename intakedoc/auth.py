from __future__ import annotations

import functools
import hmac
import logging
from typing import Any, Callable, Mapping

from flask import jsonify, request

from .config import get_settings


logger = logging.getLogger(__name__)

TOKEN_COOKIE = 'admin_token'


def token_from_request(headers: Mapping[str, str], cookies: Mapping[str, str]) -> str | None:
    """Cookie first, then `Authorization: Bearer <token>`."""
    cookie = str(cookies.get(TOKEN_COOKIE) or '').strip()
    if cookie:
        return cookie
    header = str(headers.get('Authorization') or '').strip()
    if header.lower().startswith('bearer '):
        token = header[7:].strip()
        return token or None
    return None


def is_admin(token: str | None) -> bool:
    expected = get_settings().admin_token
    if not expected:
        return False
    if not token:
        return False
    return hmac.compare_digest(token.encode('utf-8'), expected.encode('utf-8'))


def admin_required(view: Callable[..., Any]) -> Callable[..., Any]:
    @functools.wraps(view)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        token = token_from_request(request.headers, request.cookies)
        if not is_admin(token):
            if not get_settings().admin_token:
                logger.warning('Admin request to %s refused: ADMIN_TOKEN is not configured', request.path)
            return jsonify({'error': 'Unauthorized', 'kind': 'unauthorized', 'message': 'Admin access required', 'retryable': False}), 401
        return view(*args, **kwargs)

    return wrapper
