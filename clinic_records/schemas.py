# clinic_records/schemas.py
from marshmallow import EXCLUDE, Schema, fields, post_load, validate


class LegacySchema(Schema):
    """Legacy config files carry keys we no longer read; ignore them."""

    class Meta:
        unknown = EXCLUDE


def _blank_nulls(data, keys, empty=""):
    for key in keys:
        if key in data and data[key] is None:
            data[key] = empty() if callable(empty) else empty
    return data


# --- settings/app.config ---

class DictionariesSchema(LegacySchema):
    doctors = fields.List(fields.String(), load_default=list, allow_none=True)
    diagnosis = fields.List(fields.String(), load_default=list, allow_none=True)

    @post_load
    def _lists(self, data, **kwargs):
        return _blank_nulls(data, ("doctors", "diagnosis"), empty=list)


class LegacySettingsSchema(LegacySchema):
    # no defaults: only keys present in the file are written to the Store
    theme = fields.String(allow_none=True)
    locale = fields.String(allow_none=True)
    praatPath = fields.String(allow_none=True)
    defaultPatientCard = fields.String(allow_none=True)


class TabSchema(LegacySchema):
    name = fields.String(required=True)
    folder = fields.String(required=True, validate=validate.Length(min=1))


class AppConfigSchema(LegacySchema):
    dictionaries = fields.Nested(
        DictionariesSchema, load_default=lambda: {"doctors": [], "diagnosis": []}, allow_none=True
    )
    settings = fields.Nested(LegacySettingsSchema, load_default=dict, allow_none=True)
    shownTabs = fields.List(fields.Nested(TabSchema), allow_none=True)


# --- <patient>/patient.config ---

class PatientConfigSchema(LegacySchema):
    doctor = fields.String(load_default="", allow_none=True)
    diagnosis = fields.String(load_default="", allow_none=True)
    patient_card = fields.String(data_key="patientCard", load_default="", allow_none=True)

    @post_load
    def _strings(self, data, **kwargs):
        return _blank_nulls(data, ("doctor", "diagnosis", "patient_card"))


# --- <patient>/<date>/appointment.config ---

class AppointmentConfigSchema(LegacySchema):
    # only keys present are applied to the appointment
    doctors = fields.List(fields.String(), allow_none=True)
    diagnosis = fields.String(allow_none=True)
    notes = fields.String(allow_none=True)

    @post_load
    def _defaults(self, data, **kwargs):
        _blank_nulls(data, ("doctors",), empty=list)
        return _blank_nulls(data, ("diagnosis", "notes"))


# --- <patient>/<date>/tests/*.json ---

class LegacyTestSchema(LegacySchema):
    test_id = fields.Raw(data_key="testId", load_default=None, allow_none=True)
    test_name = fields.String(data_key="testName", load_default="Unknown Test", allow_none=True)
    test_type = fields.String(data_key="testType", load_default="questionnaire", allow_none=True)
    test_data = fields.Dict(data_key="testData", load_default=None, allow_none=True)
    created_at = fields.DateTime(data_key="createdAt", load_default=None, allow_none=True)
    updated_at = fields.DateTime(data_key="updatedAt", load_default=None, allow_none=True)

    @post_load
    def _names(self, data, **kwargs):
        data["test_name"] = data["test_name"] or "Unknown Test"
        data["test_type"] = data["test_type"] or "questionnaire"
        return data


# --- outgoing payloads ---

class MigrationStatsSchema(Schema):
    doctors = fields.Integer()
    diagnoses = fields.Integer()
    patients = fields.Integer()
    appointments = fields.Integer()
    tests = fields.Integer()


class MigrationResultSchema(Schema):
    success = fields.Boolean()
    message = fields.String()
    stats = fields.Nested(MigrationStatsSchema)
    errors = fields.List(fields.String())


class ProgressSchema(Schema):
    step = fields.String()
    current = fields.Integer()
    total = fields.Integer()
    percentage = fields.Integer()


class StoragePathInSchema(Schema):
    path = fields.String(required=True, validate=validate.Length(min=1))
    active = fields.Boolean(load_default=False)


class StoragePathOutSchema(Schema):
    id = fields.Integer()
    path = fields.String()
    is_active = fields.Boolean()
