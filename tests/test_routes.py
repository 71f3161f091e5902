"""
Tests for the HTTP surface and the legacy-migrate CLI command.
"""
import json
import os

from clinic_records.migration import startup
from clinic_records.models import Patient


def test_health(client):
    assert client.get("/health").get_json() == {"status": "OK"}


def test_status_reports_roots(client, paths, legacy):
    legacy.patient("Doe_Jane_1990-01-01", config={})
    body = client.get("/api/v1/migration/status").get_json()
    assert body["needs_migration"] is True
    assert body["roots"] == [paths.default_patients_root]
    assert body["settings_file"] == paths.settings_file


def test_run_without_legacy_data_is_409(client):
    res = client.post("/api/v1/migration/run")
    assert res.status_code == 409
    assert res.get_json()["code"] == "not_needed"


def test_run_migrates_and_reports_progress(client, store, paths, legacy):
    legacy.patient("Ivanov_Petro_1980-05-01", config={"doctor": "Smith"})
    legacy.appointment("Ivanov_Petro_1980-05-01", "2024-01-15", config={"notes": "checkup"})

    res = client.post("/api/v1/migration/run")

    assert res.status_code == 200
    body = res.get_json()
    assert body["result"]["success"] is True
    assert body["result"]["stats"]["patients"] == 1
    assert [p["percentage"] for p in body["progress"]] == [20, 40, 60, 80, 100]
    assert os.path.isdir(body["backup_path"])
    assert store.count(Patient) == 1

    # already migrated
    assert client.post("/api/v1/migration/run").status_code == 409
    assert client.get("/api/v1/migration/status").get_json()["needs_migration"] is False


def test_run_with_failed_backup(client, legacy, monkeypatch):
    from clinic_records.errors import BackupError

    def broken(p):
        raise BackupError("read-only volume")

    monkeypatch.setattr(startup, "create_backup", broken)
    legacy.settings({})
    res = client.post("/api/v1/migration/run")
    assert res.status_code == 500
    assert res.get_json()["code"] == "backup_failed"


def test_storage_paths(client, tmp_path):
    path = str(tmp_path / "second" / "patients")
    res = client.post("/api/v1/storage-paths", json={"path": path})
    assert res.status_code == 201
    assert res.get_json()["path"] == path

    assert client.post("/api/v1/storage-paths", json={"path": path}).status_code == 200
    listed = client.get("/api/v1/storage-paths").get_json()["results"]
    assert [p["path"] for p in listed] == [path]

    roots = client.get("/api/v1/migration/status").get_json()["roots"]
    assert roots[-1] == path


def test_storage_path_validation(client):
    res = client.post("/api/v1/storage-paths", json={})
    assert res.status_code == 400
    assert "path" in res.get_json()["details"]


def test_admin_counts(client, legacy):
    legacy.patient("Doe_Jane_1990-01-01", config={"doctor": "Smith"})
    client.post("/api/v1/migration/run")
    counts = client.get("/admin/counts").get_json()
    assert counts["patients"] == 1
    assert counts["doctors"] == 1


def test_admin_init_db_needs_confirmation(client):
    assert client.get("/admin/init-db").status_code == 200
    assert client.post("/admin/init-db").status_code == 201


def test_cli_legacy_migrate(app, legacy):
    legacy.patient("Doe_Jane_1990-01-01", config={"diagnosis": "Flu"})
    runner = app.test_cli_runner()

    res = runner.invoke(args=["legacy-migrate"])

    assert res.exit_code == 0, res.output
    assert "[ 20%] Migrating settings" in res.output
    payload = json.loads(res.output[res.output.index("{"):])
    assert payload["stats"]["diagnoses"] == 1

    again = runner.invoke(args=["legacy-migrate"])
    assert "No legacy data migration needed." in again.output
