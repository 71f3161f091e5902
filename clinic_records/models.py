# clinic_records/models.py
from datetime import datetime
from .extensions import db

PATIENT_STATUS_ACTIVE = 1
PATIENT_STATUS_ARCHIVED = 2


appointment_doctors = db.Table(
    "appointment_doctors",
    db.Column("appointment_id", db.Integer,
              db.ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False),
    db.Column("doctor_id", db.Integer,
              db.ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False),
    db.Index("pk_appointment_doctors", "appointment_id", "doctor_id"),
)


class Doctor(db.Model):
    __tablename__ = "doctors"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String, unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    deleted_at = db.Column(db.DateTime)


class Diagnosis(db.Model):
    __tablename__ = "diagnoses"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String, unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    deleted_at = db.Column(db.DateTime)


class PatientStatus(db.Model):
    __tablename__ = "patient_statuses"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String, unique=True, nullable=False)
    # system statuses cannot be renamed or deleted
    is_system = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class Patient(db.Model):
    __tablename__ = "patients"
    id = db.Column(db.Integer, primary_key=True)
    surname = db.Column(db.String, nullable=False, default="")
    name = db.Column(db.String, nullable=False, default="")
    birthdate = db.Column(db.String, nullable=False, default="")
    folder_path = db.Column(db.String, unique=True, nullable=False)
    patient_card_path = db.Column(db.String)
    primary_doctor_id = db.Column(db.Integer, db.ForeignKey("doctors.id", ondelete="SET NULL"))
    primary_diagnosis_id = db.Column(db.Integer, db.ForeignKey("diagnoses.id", ondelete="SET NULL"))
    status_id = db.Column(db.Integer, db.ForeignKey("patient_statuses.id", ondelete="SET NULL"),
                          default=PATIENT_STATUS_ACTIVE)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class Appointment(db.Model):
    __tablename__ = "appointments"
    __table_args__ = (
        db.UniqueConstraint("patient_id", "appointment_date", name="unique_patient_appointment"),
    )
    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.Integer, db.ForeignKey("patients.id", ondelete="CASCADE"),
                           nullable=False, index=True)
    appointment_date = db.Column(db.String, nullable=False, index=True)
    diagnosis_id = db.Column(db.Integer, db.ForeignKey("diagnoses.id", ondelete="SET NULL"))
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    doctors = db.relationship("Doctor", secondary=appointment_doctors, lazy="select",
                              order_by="Doctor.name", viewonly=True)


class TestTemplate(db.Model):
    __tablename__ = "test_templates"
    __test__ = False  # not a pytest class
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String, nullable=False)
    test_type = db.Column(db.String, nullable=False)
    description = db.Column(db.Text)
    template_data = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class PatientTest(db.Model):
    __tablename__ = "patient_tests"
    __test__ = False
    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.Integer, db.ForeignKey("patients.id", ondelete="CASCADE"),
                           nullable=False, index=True)
    appointment_id = db.Column(db.Integer, db.ForeignKey("appointments.id", ondelete="CASCADE"),
                               index=True)
    test_template_id = db.Column(db.Integer, db.ForeignKey("test_templates.id", ondelete="RESTRICT"),
                                 nullable=False)
    test_name = db.Column(db.String, nullable=False)
    test_type = db.Column(db.String, nullable=False)
    test_data = db.Column(db.JSON, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class Setting(db.Model):
    __tablename__ = "settings"
    key = db.Column(db.String, primary_key=True)
    value = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class Tab(db.Model):
    __tablename__ = "tabs"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String, nullable=False)
    folder = db.Column(db.String, unique=True, nullable=False)
    display_order = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class StoragePath(db.Model):
    __tablename__ = "storage_paths"
    id = db.Column(db.Integer, primary_key=True)
    path = db.Column(db.String, unique=True, nullable=False)
    is_active = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
