from flask import Flask, has_app_context
from .extensions import db, migrate, celery
import click
import logging
import os

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s'
)
logger = logging.getLogger(__name__)

RESPONSE_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
    'Referrer-Policy': 'no-referrer',
}


def create_app(config_name=None):
    """Build the reporting API: config, extensions, blueprints and CLI."""
    app = Flask(__name__)

    from imd_reports.config import config, get_config, validate_production_config
    if config_name:
        app.config.from_object(config.get(config_name, config['default']))
    else:
        app.config.from_object(get_config())

    if os.getenv('FLASK_ENV') == 'production' and not app.testing:
        validate_production_config(app.config)
        app.config['DEBUG'] = False

    db.init_app(app)
    migrate.init_app(app, db)

    from imd_reports.utils.cors import init_cors
    init_cors(app)

    init_celery(app)
    configure_logging(app)

    from imd_reports.errors import register_error_handlers
    register_error_handlers(app)

    @app.after_request
    def set_response_headers(response):
        if not app.debug:
            for name, value in RESPONSE_HEADERS.items():
                response.headers.setdefault(name, value)
        return response

    # Snapshot cache shared by the statistics and export endpoints
    from imd_reports.services.refresh import SnapshotRefresher
    SnapshotRefresher().init_app(app)

    with app.app_context():
        from . import models  # noqa: F401

        from .routes import health_bp, department_stats_bp, statistics_bp, reporting_bp
        for blueprint in (health_bp, department_stats_bp, statistics_bp, reporting_bp):
            app.register_blueprint(blueprint)

    register_cli(app)

    return app


def init_celery(app):
    """Point the shared Celery app at this Flask app's broker and context."""
    config = app.config
    celery.conf.update(
        broker_url=config['CELERY_BROKER_URL'],
        result_backend=config['CELERY_RESULT_BACKEND'],
        task_serializer=config['CELERY_TASK_SERIALIZER'],
        result_serializer=config['CELERY_RESULT_SERIALIZER'],
        accept_content=config['CELERY_ACCEPT_CONTENT'],
        timezone=config['CELERY_TIMEZONE'],
        enable_utc=config['CELERY_ENABLE_UTC'],
        task_always_eager=config['CELERY_TASK_ALWAYS_EAGER'],
    )

    class FlaskAppContextTask(celery.Task):
        """Run report tasks inside an app context so they can use db.session."""
        def __call__(self, *args, **kwargs):
            # Eager tasks already run inside the caller's context
            if has_app_context():
                return self.run(*args, **kwargs)
            with app.app_context():
                return self.run(*args, **kwargs)

    celery.Task = FlaskAppContextTask
    return celery


def configure_logging(app):
    """Apply LOG_LEVEL and, outside debug/testing, write a rotating logs/app.log."""
    logging.getLogger().setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    if app.debug or app.testing:
        return

    from logging.handlers import RotatingFileHandler

    log_file = app.config.get('LOG_FILE', 'logs/app.log')
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    handler = RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=10)
    handler.setFormatter(logging.Formatter(
        '%(asctime)s %(levelname)s %(name)s: %(message)s [in %(pathname)s:%(lineno)d]'
    ))
    handler.setLevel(logging.INFO)
    app.logger.addHandler(handler)
    app.logger.setLevel(logging.INFO)
    app.logger.info('Reporting service startup')


def register_cli(app: Flask) -> None:
    """
    Adds small helper CLI commands:
    - flask create-db: create tables using the configured database
    - flask drop-db: drop all tables (use with caution)
    - flask seed-demo: create tables and load demo records
    """

    @app.cli.command("create-db")
    def create_db_command():
        """Create database tables if they do not exist."""
        db.create_all()
        click.echo("Database tables created.")

    @app.cli.command("drop-db")
    def drop_db_command():
        """Drop all database tables. This is destructive."""
        db.drop_all()
        click.echo("Database tables dropped.")

    @app.cli.command("seed-demo")
    def seed_demo_command():
        """Load demo departments, patients, consultations and appointments."""
        from imd_reports.seeds import seed_demo_data
        db.create_all()
        if seed_demo_data():
            click.echo("Demo data loaded.")
        else:
            click.echo("Demo data already present.")
