from flask import Flask, jsonify, request
from renshu.config import config
from renshu.scenarios import load_scenarios
from renshu.services.session_service import SessionService
import logging
from logging.handlers import RotatingFileHandler
import os

def _configure_logging(logger, log_dir):
    # app.logger is the shared 'renshu' logger, so swap rather than stack handlers
    for h in [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]:
        logger.removeHandler(h)
        h.close()
    os.makedirs(log_dir, exist_ok=True)
    file_handler = RotatingFileHandler(os.path.join(log_dir, 'app.log'), maxBytes=10240, backupCount=10, encoding='utf-8')
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
    ))
    file_handler.setLevel(logging.INFO)
    logger.addHandler(file_handler)
    logger.setLevel(logging.INFO)

def create_app(overrides=None):
    base_dir = os.path.abspath(os.path.dirname(__file__))
    app = Flask(__name__,
                template_folder=os.path.join(base_dir, 'templates'),
                static_folder=os.path.join(base_dir, 'static'))

    # Apply Config; overrides also reach the config object services read
    config.apply(overrides)
    app.config.update(config.as_flask_config())
    if overrides:
        app.config.update(overrides)

    # Configure Logging
    _configure_logging(app.logger, config.LOG_DIR)
    app.logger.info('Renshu startup')

    # Lesson table, loaded once and shared read-only
    scenarios = load_scenarios(config.SCENARIOS_PATH)
    app.extensions['renshu.sessions'] = SessionService(
        scenarios, ttl_s=config.SESSION_TTL_S, max_sessions=config.MAX_SESSIONS)
    app.logger.info(f'{len(scenarios)} scenarios available')
    if not config.API_KEY:
        app.logger.warning('API_KEY not set; grammar notes and speech will use fallbacks')

    # Register Blueprints
    from renshu.routes.main import main_bp
    from renshu.routes.api import api_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(api_bp)

    # Error Handlers
    @app.errorhandler(404)
    def not_found(e):
        if request.path.startswith('/api/'):
            return jsonify({"error": "not_found"}), 404
        return "Not Found", 404

    @app.errorhandler(500)
    def internal_error(e):
        app.logger.error(f'Server Error: {e}')
        if request.path.startswith('/api/'):
            return jsonify({"error": "internal"}), 500
        return "Internal Server Error", 500

    return app
