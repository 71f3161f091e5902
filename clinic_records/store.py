"""
Store handle over the relational schema.

The Store wraps one SQLAlchemy session and is passed explicitly to every
migration component, so tests can hand in a session bound to an isolated
in-memory database.
"""
from __future__ import annotations

import json
import logging
import os
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterable, List, Optional

from sqlalchemy import delete, event, func, select

from .extensions import db
from .models import (
    Appointment, Diagnosis, Doctor, Patient, PatientStatus, PatientTest, Setting,
    StoragePath, Tab, TestTemplate, appointment_doctors,
    PATIENT_STATUS_ACTIVE, PATIENT_STATUS_ARCHIVED,
)

logger = logging.getLogger(__name__)


def enable_sqlite_savepoints(engine) -> None:
    """
    Make SAVEPOINT usable on pysqlite and turn on foreign keys.

    pysqlite defers BEGIN until the first DML statement, which breaks nested
    transactions; the driver's own transaction handling is switched off and
    SQLAlchemy emits BEGIN itself.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def init_store() -> None:
    """Create tables and system rows. Needs an application context."""
    db_file = db.engine.url.database
    if db.engine.dialect.name == "sqlite" and db_file and db_file != ":memory:":
        os.makedirs(os.path.dirname(os.path.abspath(db_file)), exist_ok=True)
    db.create_all()
    store = Store(db.session)
    store.ensure_default_statuses()
    store.commit()


class Store:
    """Entity-scoped access to the relational schema."""

    def __init__(self, session):
        self.session = session

    # --- Transactions ---

    @contextmanager
    def savepoint(self):
        """Nested transaction: rolled back alone if the block raises."""
        with self.session.begin_nested():
            yield self

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def add(self, row):
        self.session.add(row)
        self.session.flush()
        return row

    def count(self, model) -> int:
        return self.session.scalar(select(func.count()).select_from(model))

    def count_patients(self) -> int:
        return self.count(Patient)

    # --- Dictionaries ---

    def get_doctor_by_name(self, name: str) -> Optional[Doctor]:
        return self.session.scalar(select(Doctor).where(Doctor.name == name))

    def add_doctor(self, name: str) -> Doctor:
        return self.add(Doctor(name=name))

    def get_diagnosis_by_name(self, name: str) -> Optional[Diagnosis]:
        return self.session.scalar(select(Diagnosis).where(Diagnosis.name == name))

    def add_diagnosis(self, name: str) -> Diagnosis:
        return self.add(Diagnosis(name=name))

    def ensure_default_statuses(self) -> None:
        if self.count(PatientStatus):
            return
        self.session.add_all([
            PatientStatus(id=PATIENT_STATUS_ACTIVE, name="Active", is_system=True),
            PatientStatus(id=PATIENT_STATUS_ARCHIVED, name="Archived", is_system=True),
        ])
        self.session.flush()

    # --- Patients & appointments ---

    def get_patient_by_folder(self, folder_path: str) -> Optional[Patient]:
        return self.session.scalar(select(Patient).where(Patient.folder_path == folder_path))

    def add_patient(self, **fields) -> Patient:
        return self.add(Patient(**fields))

    def get_appointment(self, patient_id: int, appointment_date: str) -> Optional[Appointment]:
        return self.session.scalar(
            select(Appointment).where(
                Appointment.patient_id == patient_id,
                Appointment.appointment_date == appointment_date,
            )
        )

    def add_appointment(self, **fields) -> Appointment:
        return self.add(Appointment(**fields))

    def update_appointment(self, appointment: Appointment, **fields) -> Appointment:
        for key, value in fields.items():
            setattr(appointment, key, value)
        appointment.updated_at = datetime.utcnow()
        self.session.flush()
        return appointment

    def replace_appointment_doctors(self, appointment_id: int, doctor_ids: Iterable[int]) -> None:
        """Delete every junction row of the appointment, then insert the new set."""
        self.session.execute(
            delete(appointment_doctors).where(appointment_doctors.c.appointment_id == appointment_id)
        )
        rows = [{"appointment_id": appointment_id, "doctor_id": d} for d in doctor_ids]
        if rows:
            self.session.execute(appointment_doctors.insert(), rows)
        self.session.flush()
        # the relationship is view-only; drop any stale cached collection
        appointment = self.session.get(Appointment, appointment_id)
        if appointment is not None:
            self.session.expire(appointment, ["doctors"])

    def appointment_doctor_ids(self, appointment_id: int) -> List[int]:
        return list(self.session.scalars(
            select(appointment_doctors.c.doctor_id)
            .where(appointment_doctors.c.appointment_id == appointment_id)
        ))

    # --- Tests ---

    def get_test_template(self, template_id: int) -> Optional[TestTemplate]:
        return self.session.get(TestTemplate, template_id)

    def add_test_template(self, **fields) -> TestTemplate:
        return self.add(TestTemplate(**fields))

    def add_patient_test(self, **fields) -> PatientTest:
        return self.add(PatientTest(**fields))

    # --- Settings, tabs, storage paths ---

    def get_setting(self, key: str) -> Any:
        row = self.session.get(Setting, key)
        if row is None:
            return None
        try:
            return json.loads(row.value)
        except ValueError:
            return row.value

    def set_setting(self, key: str, value: Any) -> None:
        text = value if isinstance(value, str) else json.dumps(value)
        row = self.session.get(Setting, key)
        if row is None:
            self.session.add(Setting(key=key, value=text))
        else:
            row.value = text
            row.updated_at = datetime.utcnow()
        self.session.flush()

    def get_tabs(self) -> List[Tab]:
        return list(self.session.scalars(select(Tab).order_by(Tab.display_order)))

    def replace_tabs(self, tabs: Iterable[dict]) -> None:
        """Replace the whole tab configuration, keeping list order as display order."""
        self.session.execute(delete(Tab))
        seen = set()
        order = 0
        for tab in tabs:
            if tab["folder"] in seen:
                logger.debug("Duplicate tab folder ignored: %s", tab["folder"])
                continue
            seen.add(tab["folder"])
            self.session.add(Tab(name=tab["name"], folder=tab["folder"], display_order=order))
            order += 1
        self.session.flush()

    def storage_paths(self) -> List[StoragePath]:
        return list(self.session.scalars(select(StoragePath).order_by(StoragePath.id)))

    def add_storage_path(self, path: str, active: bool = False) -> StoragePath:
        existing = self.session.scalar(select(StoragePath).where(StoragePath.path == path))
        if existing is not None:
            return existing
        return self.add(StoragePath(path=path, is_active=active))
