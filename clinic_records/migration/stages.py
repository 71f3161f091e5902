"""
Stage migrators: each walks one shape of legacy files and writes it to the Store.

A failure while handling one record is rolled back to that record's
savepoint, written to ``result.errors`` and logged; the stage carries on
with the next record.
"""
from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from datetime import datetime, timezone

from marshmallow import ValidationError

from ..errors import FilesystemTimeout, LegacyFormatError, MissingPatientError
from ..schemas import AppConfigSchema, AppointmentConfigSchema, LegacyTestSchema, PatientConfigSchema
from .legacy_fs import APPOINTMENT_CONFIG, PATIENT_CONFIG, TESTS_FOLDER, is_date_folder
from .resolvers import get_or_create_diagnosis, get_or_create_doctor, update_appointment_data, upsert_patient

logger = logging.getLogger(__name__)

SETTING_KEYS = ("theme", "locale", "praatPath", "defaultPatientCard")


def describe(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


class StageContext:
    """What every stage needs: the Store, legacy file access and the running result."""

    def __init__(self, store, fs, result):
        self.store = store
        self.fs = fs
        self.result = result
        # each patient folder and (folder, date) pair is counted once across all roots
        self.patients_seen = set()
        self.appointments_seen = set()

    def fail(self, label: str, exc: BaseException) -> None:
        message = f"{label}: {describe(exc)}"
        logger.warning("Migration error - %s", message)
        self.result.errors.append(message)

    @contextmanager
    def record(self, label: str):
        """Run one record in a savepoint; on failure record the error and move on."""
        try:
            with self.store.savepoint():
                yield
        except Exception as exc:
            self.fail(label, exc)

    def patient_folders(self, root: str, label: str):
        """Immediate subdirectories of ``root``; [] when the root is absent."""
        try:
            if not self.fs.exists(root):
                logger.info("Patients root doesn't exist, skipping: %s", root)
                return []
            return self.fs.list_dirs(root)
        except (OSError, FilesystemTimeout) as exc:
            self.fail(f"{label} {root}", exc)
            return []

    def date_folders(self, patient_path: str, label: str):
        try:
            names = self.fs.list_dirs(patient_path)
        except (OSError, FilesystemTimeout) as exc:
            self.fail(label, exc)
            return []
        dates = []
        for name in names:
            if is_date_folder(name):
                dates.append(name)
            else:
                logger.debug("Not an appointment folder, skipping: %s", os.path.join(patient_path, name))
        return dates


# --- Stage 1: settings/app.config ---

def migrate_settings(ctx: StageContext, settings_file: str) -> None:
    try:
        config = ctx.fs.read_config(settings_file, AppConfigSchema(), optional=False)
    except FileNotFoundError:
        logger.info("No legacy settings file at %s", settings_file)
        return
    except (OSError, LegacyFormatError, FilesystemTimeout) as exc:
        ctx.fail("App config", exc)
        return

    with ctx.record("App config"):
        dictionaries = config.get("dictionaries") or {}
        for name in dictionaries.get("doctors", []):
            get_or_create_doctor(ctx.store, name)
        for name in dictionaries.get("diagnosis", []):
            get_or_create_diagnosis(ctx.store, name)

        settings = config.get("settings") or {}
        for key in SETTING_KEYS:
            if settings.get(key) is not None:
                ctx.store.set_setting(key, settings[key])

        if config.get("shownTabs") is not None:
            ctx.store.replace_tabs(config["shownTabs"])
        logger.info("App config migrated successfully")


# --- Stage 2: patient folders ---

def migrate_patients(ctx: StageContext, root: str) -> None:
    logger.info("Scanning patients in: %s", root)
    migrated = 0
    for folder in ctx.patient_folders(root, "Patients"):
        with ctx.record(f"Patient {folder}"):
            patient_path = os.path.join(root, folder)
            config = ctx.fs.read_config(os.path.join(patient_path, PATIENT_CONFIG), PatientConfigSchema())
            dates = [d for d in ctx.fs.list_dirs(patient_path) if is_date_folder(d)]
            upsert_patient(
                ctx.store,
                folder,
                latest_date=max(dates, default=""),
                doctor=config["doctor"],
                diagnosis=config["diagnosis"],
                patient_card=config["patient_card"],
            )
            if folder not in ctx.patients_seen:
                ctx.patients_seen.add(folder)
                ctx.result.stats.patients += 1
            migrated += 1
    logger.info("Migrated %d patients from %s", migrated, root)


# --- Stage 3: appointment folders ---

def migrate_appointments(ctx: StageContext, root: str) -> None:
    migrated = 0
    for folder in ctx.patient_folders(root, "Appointments"):
        patient_path = os.path.join(root, folder)
        for date in ctx.date_folders(patient_path, f"Appointments {folder}"):
            with ctx.record(f"Appointment {folder}/{date}"):
                config = ctx.fs.read_config(
                    os.path.join(patient_path, date, APPOINTMENT_CONFIG), AppointmentConfigSchema()
                )
                update_appointment_data(ctx.store, folder, date, **config)
                if (folder, date) not in ctx.appointments_seen:
                    ctx.appointments_seen.add((folder, date))
                    ctx.result.stats.appointments += 1
                migrated += 1
    logger.info("Migrated %d appointments from %s", migrated, root)


# --- Stage 4: tests/*.json ---

def _template_ref(value, path):
    """Legacy testId as a template key: int for numeric ids, else the raw string."""
    if value is None or value == "":
        return None
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise LegacyFormatError(path, f"testId must be a number or a string, got {value!r}")
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return value


def _naive_utc(value):
    if value is None:
        return datetime.utcnow()
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class TestMigrator:
    """Migrates legacy test files; keeps the templates it created during this run."""

    __test__ = False

    def __init__(self, ctx: StageContext):
        self.ctx = ctx
        self.created_templates = {}

    def resolve_template(self, ref, record):
        """
        Template id for ``ref`` and whether it was created just now.

        The caller caches a created template only after the test row that
        references it is written.
        """
        if isinstance(ref, int):
            template = self.ctx.store.get_test_template(ref)
            if template is not None:
                return template.id, False
        if ref in self.created_templates:
            return self.created_templates[ref], False
        template = self.ctx.store.add_test_template(
            name=record["test_name"],
            test_type=record["test_type"],
            template_data=record["test_data"] or {},
        )
        logger.info("Created test template %d for legacy testId %r", template.id, ref)
        return template.id, True

    def migrate_file(self, folder: str, date: str, path: str) -> bool:
        """Insert one PatientTest from ``path``. False when the file has no template reference."""
        raw = self.ctx.fs.read_json(path)
        if not isinstance(raw, dict):
            raise LegacyFormatError(path, "test file must contain a JSON object")
        try:
            record = LegacyTestSchema().load(raw)
        except ValidationError as exc:
            raise LegacyFormatError(path, "unexpected structure", exc.messages) from exc

        ref = _template_ref(record["test_id"], path)
        if ref is None:
            logger.debug("Test file without testId skipped: %s", path)
            return False

        patient = self.ctx.store.get_patient_by_folder(folder)
        if patient is None:
            raise MissingPatientError(folder)
        appointment = self.ctx.store.get_appointment(patient.id, date)
        columns = dict(
            patient_id=patient.id,
            appointment_id=appointment.id if appointment is not None else None,
            test_name=record["test_name"],
            test_type=record["test_type"],
            test_data=record["test_data"] if record["test_data"] is not None else raw,
            created_at=_naive_utc(record["created_at"]),
            updated_at=_naive_utc(record["updated_at"]),
        )

        template_id, created = self.resolve_template(ref, record)
        self.ctx.store.add_patient_test(test_template_id=template_id, **columns)
        if created:
            self.created_templates[ref] = template_id
        return True

    def migrate_root(self, root: str) -> None:
        migrated = 0
        for folder in self.ctx.patient_folders(root, "Tests"):
            patient_path = os.path.join(root, folder)
            for date in self.ctx.date_folders(patient_path, f"Tests {folder}"):
                tests_path = os.path.join(patient_path, date, TESTS_FOLDER)
                try:
                    files = self.ctx.fs.list_files(tests_path, ".json")
                except (FileNotFoundError, NotADirectoryError):
                    continue
                except (OSError, FilesystemTimeout) as exc:
                    self.ctx.fail(f"Tests {folder}/{date}", exc)
                    continue
                for name in files:
                    with self.ctx.record(f"Test {folder}/{date}/{name}"):
                        if self.migrate_file(folder, date, os.path.join(tests_path, name)):
                            self.ctx.result.stats.tests += 1
                            migrated += 1
        logger.info("Migrated %d tests from %s", migrated, root)
