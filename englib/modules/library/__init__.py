from flask import Blueprint

bp = Blueprint('library', __name__, url_prefix='/api/files')

# Import routes after bp is defined to avoid circular import
from englib.modules.library import routes
