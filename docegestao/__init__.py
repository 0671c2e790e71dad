"""Flask application factory."""
from flask import Flask, request, jsonify
from flask_wtf.csrf import CSRFProtect, CSRFError
from werkzeug.exceptions import HTTPException
import os


def create_app(config_object='config.Config', config_overrides=None):
    """
    Create and configure the Flask application.

    Args:
        config_object: Import path (or class) of the configuration
        config_overrides: Optional mapping applied on top of it (tests)
    """
    app = Flask(__name__)
    app.config.from_object(config_object)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize CSRF protection
    CSRFProtect(app)

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF Error: {e.description}")
        return jsonify({'status': 'error', 'message': 'A sessão expirou. Recarregue a página.'}), 400

    # Initialize Sentry for error tracking in production
    sentry_dsn = app.config.get('SENTRY_DSN')
    if sentry_dsn and (app.config.get('ENV') == 'production' or os.getenv('FLASK_ENV') == 'production'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,  # 10% of transactions for performance monitoring
            profiles_sample_rate=0.1,  # 10% for profiling
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Setup Prometheus metrics instrumentation
    from docegestao.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: Enable ProxyFix for HTTPS behind Nginx reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=1,      # Trust X-Forwarded-For with 1 proxy
            x_proto=1,    # Trust X-Forwarded-Proto
            x_host=1,     # Trust X-Forwarded-Host
            x_port=1,     # Trust X-Forwarded-Port
            x_prefix=0    # No prefix (not behind a URL prefix)
        )

    # Backend selection (remote database or local JSON storage), once per process
    from docegestao.services.data_service import init_data_service
    from docegestao.services.store_service import init_store
    data_service = init_data_service(app)
    init_store(app, data_service)

    from docegestao.middleware import load_user

    @app.before_request
    def before_request_handler():
        """Load the logged-in operator for each request."""
        load_user()

    # Error Handlers
    from docegestao.exceptions import DoceGestaoError

    @app.errorhandler(DoceGestaoError)
    def handle_app_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"DoceGestaoError [{error.status_code}]: {error.message}")
        else:
            app.logger.warning(f"DoceGestaoError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'status': 'error', 'message': error.description}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.exception(f"Unhandled Exception: {error}")
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500

    # Register blueprints
    from docegestao.blueprints.auth import auth_bp
    from docegestao.blueprints.main import main_bp
    from docegestao.blueprints.pos import pos_bp
    from docegestao.blueprints.inventory import inventory_bp
    from docegestao.blueprints.dashboard import dashboard_bp
    from docegestao.blueprints.assistant import assistant_bp
    from docegestao.blueprints.metrics import metrics_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(main_bp)
    app.register_blueprint(pos_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(assistant_bp)
    app.register_blueprint(metrics_bp)

    # Register CLI commands
    from docegestao.cli_commands import init_cli_commands
    init_cli_commands(app)

    app.logger.info(f"DoceGestão started in {data_service.mode} mode")
    return app
