import logging

from flask import Flask, request

from .config import Config
from .extensions import db, cors
from .store import Store, enable_sqlite_savepoints, init_store

logger = logging.getLogger(__name__)


def create_app(config_class: type = Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    db.init_app(app)
    cors.init_app(app, origins=app.config["CORS_ORIGINS"])

    with app.app_context():
        enable_sqlite_savepoints(db.engine)
        init_store()

    @app.before_request
    def _log_req():
        logger.debug("REQ: %s %s | CT: %s", request.method, request.path,
                     request.headers.get("Content-Type"))

    @app.get("/health")
    def health():
        return {"status": "OK"}, 200

    # register blueprints
    from .routes.admin import admin_bp
    app.register_blueprint(admin_bp)

    from .routes.migration import migration_bp
    app.register_blueprint(migration_bp)

    from .routes.storage import storage_bp
    app.register_blueprint(storage_bp)

    from .cli import register_cli
    register_cli(app)

    if app.config["MIGRATE_ON_STARTUP"]:
        from .migration import MigrationPaths, migrate_on_startup
        with app.app_context():
            migrate_on_startup(Store(db.session), MigrationPaths.from_config(app.config))

    return app
