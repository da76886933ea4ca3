import secrets
from functools import wraps
from flask import current_app, jsonify, request

def require_admin(f):
    """Decorator to require the admin token on admin API routes"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get('ADMIN_TOKEN')
        if expected:
            provided = request.headers.get('X-Admin-Token', '')
            if not secrets.compare_digest(provided.encode('utf-8'), expected.encode('utf-8')):
                return jsonify({'success': False, 'error': 'Admin authentication required'}), 401
        return f(*args, **kwargs)
    return decorated_function
