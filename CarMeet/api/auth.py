"""
Bearer-token authentication for the CarMeet API.

``load_user`` runs before every request and resolves the Supabase access
token to a user; resources read the verified id through ``get_user_id`` and
pass it explicitly to the services.
"""
import logging
from functools import wraps

from flask import g, request, current_app

from CarMeet.supabase_client import get_supabase_admin_client

logger = logging.getLogger(__name__)


def _auth_client():
    return current_app.extensions.get('supabase_admin') or get_supabase_admin_client()


def load_user():
    """Load user from authorization header"""
    g.user = None
    g.user_id = None
    g.access_token = None

    auth_header = request.headers.get('Authorization')
    if not auth_header or not auth_header.startswith('Bearer '):
        return

    token = auth_header.split("Bearer ")[1].strip()
    if not token:
        return

    try:
        user_response = _auth_client().auth.get_user(token)
    except Exception as token_error:
        logger.error(f"Token validation exception: {str(token_error)}")
        return

    if user_response and user_response.user:
        g.user = user_response.user
        g.user_id = user_response.user.id
        g.access_token = token


# Auth decorators
def auth_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        if getattr(g, 'user_id', None) is None:
            logger.warning(f"Authentication failed for {request.path}: No user_id in context")
            return {'success': False, 'error': 'Authentication required', 'code': 'not_authenticated'}, 401
        return f(*args, **kwargs)
    return decorated


def get_user_id():
    """Helper function to get the current user's ID"""
    if getattr(g, 'user_id', None):
        return g.user_id
    user = getattr(g, 'user', None)
    if user is not None and getattr(user, 'id', None):
        return user.id
    return None
