import os
from flask import Blueprint, request, current_app
from ..extensions import db
from ..models import (Appointment, Diagnosis, Doctor, Patient, PatientTest, Setting,
                      StoragePath, Tab, TestTemplate)
from ..store import Store, init_store

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

COUNTED = {
    "doctors": Doctor,
    "diagnoses": Diagnosis,
    "patients": Patient,
    "appointments": Appointment,
    "test_templates": TestTemplate,
    "patient_tests": PatientTest,
    "settings": Setting,
    "tabs": Tab,
    "storage_paths": StoragePath,
}

@admin_bp.get("/db-path")
def db_path():
    db_file = db.engine.url.database
    abs_path = os.path.abspath(db_file) if db_file else None
    return {"database_uri": db.engine.url.render_as_string(hide_password=True),
            "db_file": db_file, "absolute_path": abs_path,
            "app_data_dir": current_app.config["APP_DATA_DIR"]}, 200

@admin_bp.route("/init-db", methods=["POST", "GET"])
def init_db():
    if request.method == "GET" and request.args.get("confirm") != "yes":
        return {"message": "Use POST or /admin/init-db?confirm=yes (local only)"}, 200
    init_store()
    return {"status": "initialized"}, 201

@admin_bp.get("/counts")
def row_counts():
    """Row count per table, for checking a migration by hand."""
    store = Store(db.session)
    return {name: store.count(model) for name, model in COUNTED.items()}, 200
