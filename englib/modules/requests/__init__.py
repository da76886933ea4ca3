from flask import Blueprint

bp = Blueprint('requests', __name__, url_prefix='/api')

# Import routes after bp is defined to avoid circular import
from englib.modules.requests import routes
