"""
PON manager backend
Application factories for the operator API and the CWMP endpoint
"""
import logging

from flask import Flask, jsonify
from flask_cors import CORS
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()


def _resolve_config(config_class):
    if isinstance(config_class, str):
        from ponmgr.config import config as config_map

        return config_map.get(config_class, config_class)
    return config_class


def _configure_logging(app):
    level = str(app.config.get('LOG_LEVEL') or 'INFO').upper()
    if not app.debug and not app.testing:
        gunicorn_logger = logging.getLogger('gunicorn.error')
        if gunicorn_logger.handlers:
            app.logger.handlers = gunicorn_logger.handlers
    app.logger.setLevel(level)
    logging.getLogger('ponmgr').setLevel(level)


def _base_app(config_class):
    config_class = _resolve_config(config_class)
    validate = getattr(config_class, 'validate', None)
    if callable(validate):
        validate()

    app = Flask(__name__)
    app.config.from_object(config_class)

    db.init_app(app)
    migrate.init_app(app, db)
    _configure_logging(app)
    return app


def create_app(config_class='default'):
    """Application factory"""
    app = _base_app(config_class)
    CORS(app, resources={r"/api/*": {"origins": app.config['CORS_ORIGINS']}})

    from ponmgr.acs.routes import acs_bp
    from ponmgr.routes.olt import olt_bp
    from ponmgr.routes.tr069 import tr069_bp

    app.register_blueprint(olt_bp, url_prefix='/api/olts')
    app.register_blueprint(tr069_bp, url_prefix='/api/tr069')
    app.register_blueprint(acs_bp, url_prefix='/acs')

    # Health check endpoint
    @app.route('/health')
    def health():
        return jsonify({'status': 'healthy', 'service': 'ponmgr-backend'})

    # Error handlers
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(f'Server Error: {error}')
        return jsonify({'error': 'Internal server error'}), 500

    return app


def create_acs_app(config_class='default'):
    """Factory for the standalone CWMP listener (TR-069 port)."""
    app = _base_app(config_class)

    from ponmgr.acs.routes import acs_bp

    app.register_blueprint(acs_bp)
    return app
