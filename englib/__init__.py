from flask import Flask, jsonify
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session
import logging
from dotenv import load_dotenv
from englib.config import Config

load_dotenv()

db_session = scoped_session(sessionmaker())
db_engine = None

def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Keep natural ordering of tree output intact
    app.json.sort_keys = False
    app.json.ensure_ascii = False

    logging.basicConfig(
        level=app.config['LOG_LEVEL'].upper(),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )

    # Setup database session
    global db_engine
    db_engine = create_engine(app.config['SQLALCHEMY_DATABASE_URI'], pool_pre_ping=True)
    db_session.remove()
    db_session.configure(bind=db_engine)

    # Import models so every table is registered on Base.metadata
    from englib.core import models as core_models
    from englib.modules.library.models import Category, Textbook, File, FileClick
    from englib.modules.requests.models import TextbookRequest, TextbookRequestLog

    core_models.Base.metadata.create_all(db_engine)

    # Dynamically load and register modules
    from englib.modules import load_modules
    load_modules(app)

    @app.teardown_appcontext
    def shutdown_session(exception=None):
        db_session.remove()

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({'success': False, 'error': 'Not found'}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return jsonify({'success': False, 'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def handle_internal_error(e):
        return jsonify({'success': False, 'error': 'Internal server error'}), 500

    # Setup scheduled storage sync
    from englib.modules.sync.scheduler import setup_sync_scheduler
    setup_sync_scheduler(app)

    return app
