"""Session helpers resolving the current actor. Sessions are issued elsewhere."""
from functools import wraps
from flask import g, jsonify, session
from facilityops.auth.identity import Identity
from facilityops.logging_config import get_logger
from facilityops.repositories import UserDirectory

logger = get_logger(__name__)


def get_current_identity():
    """
    Get the identity of the logged-in user from the session.
    
    Returns:
        Identity if logged in with an active account, None otherwise
    """
    from flask import has_request_context
    
    # Background threads (the notification worker) have no actor
    if not has_request_context():
        return None
    
    user_id = session.get('user_id')
    if not user_id:
        return None
    
    user = UserDirectory.get(user_id)
    if user and user.is_active:
        return Identity.from_user(user)
    return None


def login_required(f):
    """
    Decorator to require a logged-in user for a route.
    
    Stores the Identity on ``g.identity``; returns 401 Unauthorized if nobody is logged in.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        identity = get_current_identity()
        if not identity:
            return jsonify({'error': {'kind': 'unauthorized', 'message': 'Authentication required', 'details': None}}), 401
        g.identity = identity
        return f(*args, **kwargs)
    return decorated_function
