from flask import Blueprint

bp = Blueprint('sync', __name__, url_prefix='/api/sync')

# Import routes after bp is defined to avoid circular import
from englib.modules.sync import routes
