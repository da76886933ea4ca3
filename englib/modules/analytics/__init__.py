from flask import Blueprint

bp = Blueprint('analytics', __name__, url_prefix='/api/admin')

# Import routes after bp is defined to avoid circular import
from englib.modules.analytics import routes
