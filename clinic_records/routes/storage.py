# clinic_records/routes/storage.py
from flask import Blueprint, request
from marshmallow import ValidationError
from ..extensions import db
from ..schemas import StoragePathInSchema, StoragePathOutSchema
from ..store import Store
from . import error

storage_bp = Blueprint("storage", __name__, url_prefix="/api/v1/storage-paths")


@storage_bp.get("")
def list_paths():
    """Configured patient storage roots, oldest first."""
    return {"results": StoragePathOutSchema(many=True).dump(Store(db.session).storage_paths())}, 200


@storage_bp.post("")
def add_path():
    """Register a patients root; adding an existing path returns it unchanged."""
    try:
        body = StoragePathInSchema().load(request.get_json(silent=True) or {})
    except ValidationError as e:
        return error("validation_error", 400, "Invalid payload", e.messages)

    store = Store(db.session)
    before = len(store.storage_paths())
    row = store.add_storage_path(body["path"], active=body["active"])
    store.commit()
    created = len(store.storage_paths()) > before
    return StoragePathOutSchema().dump(row), 201 if created else 200
