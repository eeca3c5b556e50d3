import logging
import os
import sys

import click
from dotenv import load_dotenv
from flask import Flask, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

# Get logger for this module
logger = logging.getLogger(__name__)

# Load environment variables conditionally
# Only load from .env when DATABASE_URL is not already defined by the environment
if not os.getenv("DATABASE_URL"):
    load_dotenv()


def test_database_connection() -> bool:
    """Test database connection"""
    from odonto.db.session import get_engine

    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
            return True
    except SQLAlchemyError as e:
        logger.error(
            "Database connection failed",
            extra={"context": {"error": str(e)}},
            exc_info=True,
        )
        return False


def _is_test_mode(app: Flask) -> bool:
    """Check if we're in test mode for limiter and metrics configuration."""
    testing_val = os.getenv("TESTING", "").lower().strip()
    if testing_val in ("true", "1", "yes"):
        return True
    if "pytest" in sys.modules:
        return True
    if os.getenv("PYTEST_CURRENT_TEST"):
        return True
    return bool(app.config.get("TESTING"))


def _init_sentry(env: str) -> None:
    sentry_dsn = os.getenv("SENTRY_DSN")
    if not sentry_dsn:
        logger.info(
            "Sentry not initialized (SENTRY_DSN not set)",
            extra={"context": {"environment": env}},
        )
        return

    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=sentry_dsn,
        environment=env,
        release=os.getenv("GIT_SHA", "unknown"),
        integrations=[
            FlaskIntegration(),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        profiles_sample_rate=0.1,
        # Patient data must never leave the clinic
        send_default_pii=False,
    )
    logger.info(
        "Sentry initialized",
        extra={
            "context": {
                "environment": env,
                "release": os.getenv("GIT_SHA", "unknown"),
                "traces_sample_rate": 0.1,
            }
        },
    )


def _init_metrics(app: Flask, env: str, test_mode: bool) -> None:
    """Expose /metrics for Prometheus scraping."""
    from prometheus_client import CollectorRegistry
    from prometheus_flask_exporter import PrometheusMetrics

    # Every app built by the test suite gets its own registry; the default
    # one rejects the second registration of the same collectors.
    if test_mode:
        metrics = PrometheusMetrics(app, registry=CollectorRegistry())
    else:
        metrics = PrometheusMetrics(app)
    try:
        metrics.info(
            "app_info",
            "Application information",
            version=os.getenv("GIT_SHA", "unknown"),
            environment=env,
        )
    except ValueError as e:
        # Metric already registered (happens when create_app called multiple times)
        logger.debug(
            "app_info metric already registered",
            extra={"context": {"error": str(e)}},
        )
    logger.info(
        "Prometheus metrics initialized",
        extra={"context": {"metrics_endpoint": "/metrics"}},
    )


def _init_talisman(app: Flask) -> None:
    from flask_talisman import Talisman

    # JSON API only: nothing on these pages needs scripts, styles or frames.
    csp = {
        "default-src": ["'none'"],
        "frame-ancestors": ["'none'"],
    }
    Talisman(
        app,
        content_security_policy=csp,
        force_https=True,
        strict_transport_security=True,
        strict_transport_security_max_age=63072000,
        strict_transport_security_include_subdomains=True,
        frame_options="DENY",
        referrer_policy="no-referrer",
    )


def _register_blueprints(app: Flask) -> None:
    from odonto.controllers.appointment_controller import appointment_bp
    from odonto.controllers.auth_controller import auth_bp
    from odonto.controllers.doctor_controller import doctor_bp
    from odonto.controllers.lesion_controller import lesion_bp
    from odonto.controllers.odontogram_controller import odontogram_bp
    from odonto.controllers.patient_controller import patient_bp
    from odonto.controllers.treatment_controller import treatment_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(patient_bp)
    app.register_blueprint(doctor_bp)
    app.register_blueprint(appointment_bp)
    app.register_blueprint(treatment_bp)
    app.register_blueprint(lesion_bp)
    app.register_blueprint(odontogram_bp)


def _register_cli(app: Flask) -> None:
    @app.cli.command("create-tables")
    def create_tables_command():
        """Create all database tables."""
        from odonto.db.session import create_tables

        create_tables()
        click.echo("Database tables created")

    @app.cli.command("create-user")
    @click.argument("email")
    @click.argument("password")
    @click.argument("name")
    def create_user_command(email, password, name):
        """Create a staff account that can log in to the API."""
        from odonto.db.session import SessionLocal, create_tables
        from odonto.repositories.user_repo import UserRepository
        from odonto.services.auth_service import AuthService

        create_tables()
        db = SessionLocal()
        try:
            user = AuthService(UserRepository(db)).create_user(email, password, name)
            click.echo(f"User created: {user.email} ({user.id})")
        finally:
            db.close()


def create_app() -> Flask:
    env = os.getenv("FLASK_ENV", "development")
    is_production = env == "production"

    app = Flask(__name__)

    # Set TESTING config from environment variable (before any other configuration)
    testing_env = os.getenv("TESTING", "").lower().strip()
    if testing_env in ("true", "1", "yes"):
        app.config["TESTING"] = True
    test_mode = _is_test_mode(app)

    # Configure structured logging (after app creation so we can register hooks)
    from odonto.core.logging_config import setup_logging

    setup_logging(
        app=app,
        log_level=logging.INFO if is_production else logging.DEBUG,
        enable_sql_echo=os.getenv("SQL_ECHO", "0") == "1",
        # log_to_file controlled by LOG_TO_FILE env var (1=files, 0=stdout only)
        use_json_format=is_production,
    )
    logger.info(
        "Logging configured",
        extra={"context": {"environment": env, "json_format": is_production}},
    )

    from odonto.core.config import log_clinic_config, log_timezone_config

    log_timezone_config()
    log_clinic_config()

    _init_sentry(env)
    # MUST be initialized BEFORE limiter to avoid being rate-limited
    _init_metrics(app, env, test_mode)

    # Configuration
    app.config["SECRET_KEY"] = os.getenv("FLASK_SECRET_KEY", "dev-secret-change-me")
    app.config["LOGIN_DISABLED"] = (
        os.getenv("LOGIN_DISABLED", "false").lower() == "true"
    )
    app.config["JSON_SORT_KEYS"] = False

    # Refuse to boot in production with development secrets
    if is_production:
        from odonto.core.security import get_jwt_secret_key, is_weak_secret

        if is_weak_secret(app.config["SECRET_KEY"]):
            raise ValueError(
                "FLASK_SECRET_KEY must be a non-default secret of at least "
                "32 characters in production"
            )
        get_jwt_secret_key()

    # Initialize Flask-Limiter (rate limiting) with environment-aware storage
    from odonto.core.limiter_config import limiter

    app.config["RATELIMIT_STORAGE_URI"] = os.getenv("LIMITER_STORAGE_URI", "memory://")
    rate_limit_off = test_mode and os.getenv("RATE_LIMIT_ENABLED", "1") == "0"
    app.config["RATELIMIT_ENABLED"] = not rate_limit_off
    limiter.init_app(app)
    if rate_limit_off:
        limiter.enabled = False
        logger.info(
            "Rate limiting disabled for testing", extra={"context": {"test_mode": True}}
        )

    # HTTPS enforcement and security headers
    if is_production:
        _init_talisman(app)

    from odonto.core.error_handlers import register_error_handlers

    register_error_handlers(app)
    _register_blueprints(app)
    _register_cli(app)

    @app.route("/health")
    def health_check():
        """Health check endpoint for Docker"""
        db_status = test_database_connection()
        return jsonify(
            {
                "status": "healthy" if db_status else "unhealthy",
                "database": "connected" if db_status else "disconnected",
            }
        ), (200 if db_status else 503)

    # Make sure the schema exists before the first request
    from odonto.db.session import create_tables

    try:
        create_tables()
    except SQLAlchemyError as e:
        logger.error(
            "Error creating tables",
            extra={"context": {"error": str(e)}},
            exc_info=True,
        )

    logger.info(
        "Application created",
        extra={"context": {"environment": env, "testing": test_mode}},
    )
    return app
