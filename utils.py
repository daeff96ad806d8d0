"""
Shared helpers: username/date normalization and bearer credentials.
"""
import hashlib
import hmac
import base64
import logging
import re
from datetime import date, datetime

import config

logger = logging.getLogger(__name__)

ISO_DATE_PATTERN = re.compile(r'[0-9]{4}-[0-9]{2}-[0-9]{2}')

def normalize_username(username):
    """Lowercase and trim a username for lookups."""
    if username is None:
        return ''
    return str(username).strip().lower()

def is_iso_date(value):
    """True for a zero-padded YYYY-MM-DD string naming a real calendar date."""
    if not value or not ISO_DATE_PATTERN.fullmatch(value):
        return False
    try:
        datetime.strptime(value, '%Y-%m-%d')
    except ValueError:
        return False
    return True

def parse_iso_date(value):
    """Parse YYYY-MM-DD into a date, raising ValueError otherwise."""
    if not is_iso_date(value):
        raise ValueError(f"Invalid date: {value!r} (expected YYYY-MM-DD)")
    return date.fromisoformat(value)

def _b64(raw):
    return base64.urlsafe_b64encode(raw).decode('ascii').rstrip('=')

def _unb64(text):
    padding = '=' * (-len(text) % 4)
    return base64.urlsafe_b64decode(text + padding)

def _sign(user_id):
    return hmac.new(config.SECRET_KEY.encode(), user_id.encode(), hashlib.sha256).digest()

def issue_token(user_id):
    """
    Mint a bearer credential naming a user.
    Format: base64url(user_id) "." base64url(HMAC-SHA256(SECRET_KEY, user_id))
    """
    return f"{_b64(user_id.encode())}.{_b64(_sign(user_id))}"

def verify_token(token):
    """Return the user id named by a credential, or None if it doesn't verify."""
    if not token or '.' not in token:
        return None
    encoded_id, encoded_sig = token.split('.', 1)
    try:
        user_id = _unb64(encoded_id).decode('utf-8')
        given = _unb64(encoded_sig)
    except (ValueError, UnicodeDecodeError):
        logger.debug("Undecodable bearer credential")
        return None
    if not user_id or not hmac.compare_digest(given, _sign(user_id)):
        return None
    return user_id
