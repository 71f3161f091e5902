"""
Get-or-create helpers that keep dictionary and patient rows unique.

Each insert runs in its own savepoint; a unique-constraint violation means
another writer created the row first, so the row is read back by its key.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError

from ..errors import MissingPatientError
from .legacy_fs import split_folder_name

logger = logging.getLogger(__name__)


def _get_or_create(lookup, insert, key):
    existing = lookup(key)
    if existing is not None:
        return existing
    try:
        return insert(key)
    except IntegrityError:
        logger.debug("Lost insert race for %r, reading it back", key)
        existing = lookup(key)
        if existing is None:
            raise
        return existing


def _insert_in_savepoint(store, insert):
    def run(key):
        with store.savepoint():
            return insert(key)
    return run


def get_or_create_doctor(store, name: str) -> Optional[int]:
    """
    Doctor id for ``name``, creating the doctor on first reference.

    Soft-deleted doctors are returned as they are, not restored.
    """
    if not name:
        return None
    row = _get_or_create(store.get_doctor_by_name,
                         _insert_in_savepoint(store, store.add_doctor), name)
    return row.id


def get_or_create_diagnosis(store, name: str) -> Optional[int]:
    if not name:
        return None
    row = _get_or_create(store.get_diagnosis_by_name,
                         _insert_in_savepoint(store, store.add_diagnosis), name)
    return row.id


def upsert_patient(store, folder_path: str, latest_date: str = "", doctor: str = "",
                   diagnosis: str = "", patient_card: str = "") -> int:
    """
    Patient id for ``folder_path``, inserting the patient if it is new.

    When ``latest_date`` is given and the patient has no appointment on that
    date yet, one is created carrying the patient's diagnosis.
    """
    surname, name, birthdate = split_folder_name(folder_path)
    doctor_id = get_or_create_doctor(store, doctor)
    diagnosis_id = get_or_create_diagnosis(store, diagnosis)

    def insert(key):
        with store.savepoint():
            return store.add_patient(
                surname=surname,
                name=name,
                birthdate=birthdate,
                folder_path=key,
                patient_card_path=patient_card or None,
                primary_doctor_id=doctor_id,
                primary_diagnosis_id=diagnosis_id,
            )

    patient = _get_or_create(store.get_patient_by_folder, insert, folder_path)

    if latest_date and store.get_appointment(patient.id, latest_date) is None:
        store.add_appointment(patient_id=patient.id, appointment_date=latest_date,
                              diagnosis_id=diagnosis_id)
    return patient.id


def update_appointment_data(store, folder_path: str, appointment_date: str,
                            doctors: Optional[Iterable[str]] = None,
                            diagnosis: Optional[str] = None,
                            notes: Optional[str] = None) -> int:
    """
    Create or update the (patient, date) appointment and return its id.

    Arguments left as None are not touched. A doctor list replaces the
    appointment's doctors entirely.
    """
    patient = store.get_patient_by_folder(folder_path)
    if patient is None:
        raise MissingPatientError(folder_path)

    def insert(date):
        with store.savepoint():
            return store.add_appointment(patient_id=patient.id, appointment_date=date)

    appointment = _get_or_create(
        lambda date: store.get_appointment(patient.id, date), insert, appointment_date
    )

    updates = {}
    if diagnosis is not None:
        updates["diagnosis_id"] = get_or_create_diagnosis(store, diagnosis)
    if notes is not None:
        updates["notes"] = notes
    if updates:
        store.update_appointment(appointment, **updates)

    if doctors is not None:
        doctor_ids = []
        for doctor_name in doctors:
            doctor_id = get_or_create_doctor(store, doctor_name)
            if doctor_id is not None and doctor_id not in doctor_ids:
                doctor_ids.append(doctor_id)
        store.replace_appointment_doctors(appointment.id, doctor_ids)
    return appointment.id
