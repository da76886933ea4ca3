"""
Dynamic module loader - automatically discovers and registers modules
"""
import os
import importlib
import logging

logger = logging.getLogger(__name__)

# List of modules to load
MODULES = ['library', 'admin', 'analytics', 'requests', 'sync']

def load_modules(app):
    """Dynamically load all modules and register their blueprints"""
    modules_dir = os.path.dirname(__file__)

    for module_name in MODULES:
        module_path = os.path.join(modules_dir, module_name)
        if not os.path.isdir(module_path):
            continue
        try:
            module = importlib.import_module(f'englib.modules.{module_name}')
        except ImportError:
            logger.exception(f"Error loading module {module_name}")
            raise

        # Register routes if they exist
        if hasattr(module, 'bp'):
            app.register_blueprint(module.bp)
            logger.debug(f"Registered module: {module_name}")
