from flask import Blueprint

bp = Blueprint('admin', __name__, url_prefix='/api/admin')

# Import routes after bp is defined to avoid circular import
from englib.modules.admin import routes
