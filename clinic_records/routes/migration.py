# clinic_records/routes/migration.py
from __future__ import annotations
from flask import Blueprint, request, current_app
from ..extensions import db
from ..migration import MigrationPaths, all_patient_roots, migrate_on_startup, needs_migration
from ..schemas import MigrationResultSchema, ProgressSchema
from ..store import Store
from . import error

migration_bp = Blueprint("migration", __name__, url_prefix="/api/v1/migration")


def _context():
    return Store(db.session), MigrationPaths.from_config(current_app.config)


@migration_bp.get("/status")
def status():
    """Whether legacy data is waiting to be migrated, and where it is searched."""
    store, paths = _context()
    return {
        "needs_migration": needs_migration(store, paths),
        "settings_file": paths.settings_file,
        "roots": all_patient_roots(store, paths),
    }, 200


@migration_bp.post("/run")
def run():
    """
    Back up the legacy data directory and migrate it.
    Refuses with 409 when there is nothing to migrate, unless ?force=yes.
    """
    store, paths = _context()
    force = request.args.get("force") == "yes"
    if not force and not needs_migration(store, paths):
        return error("not_needed", 409, "No legacy data to migrate")

    events = []
    outcome = migrate_on_startup(store, paths, on_progress=events.append, force=True)
    result = outcome.result
    if not outcome.ran:
        return error("backup_failed", 500, result.message,
                     MigrationResultSchema().dump(result))

    body = {
        "backup_path": outcome.backup_path,
        "result": MigrationResultSchema().dump(result),
        "progress": ProgressSchema(many=True).dump(events),
    }
    return body, 200 if result.success else 500
