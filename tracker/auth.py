import logging
from functools import wraps

from flask import g, jsonify, request

from tracker.models.profile import Profile
from utils import verify_token

logger = logging.getLogger(__name__)


def bearer_user_id():
    """User id named by the request's bearer credential, or None."""
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return verify_token(token.strip())


def login_required(view):
    """Reject requests without a valid bearer credential; sets g.user_id."""
    @wraps(view)
    def wrapped(*args, **kwargs):
        user_id = bearer_user_id()
        if not user_id or not Profile.get_by_id(user_id):
            logger.warning(f"Unauthorized request to {request.path}")
            return jsonify({'error': 'Unauthorized'}), 401
        g.user_id = user_id
        return view(*args, **kwargs)
    return wrapped
