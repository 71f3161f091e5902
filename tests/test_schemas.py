"""
Tests for decoding the legacy JSON config files.
"""
from datetime import datetime, timezone

import pytest
from marshmallow import ValidationError

from clinic_records.schemas import (
    AppConfigSchema, AppointmentConfigSchema, LegacyTestSchema, PatientConfigSchema,
)


class TestAppConfigSchema:

    def test_empty_file(self):
        config = AppConfigSchema().load({})
        assert config["dictionaries"] == {"doctors": [], "diagnosis": []}
        assert config["settings"] == {}
        assert "shownTabs" not in config

    def test_only_present_settings_are_returned(self):
        config = AppConfigSchema().load({"settings": {"theme": "dark", "unknown": 1}})
        assert config["settings"] == {"theme": "dark"}

    def test_null_dictionary_lists(self):
        config = AppConfigSchema().load({"dictionaries": {"doctors": None}})
        assert config["dictionaries"]["doctors"] == []

    def test_tab_needs_folder(self):
        with pytest.raises(ValidationError) as info:
            AppConfigSchema().load({"shownTabs": [{"name": "video_materials"}]})
        assert "shownTabs" in info.value.messages

    def test_doctor_names_must_be_strings(self):
        with pytest.raises(ValidationError):
            AppConfigSchema().load({"dictionaries": {"doctors": [1, 2]}})


class TestPatientConfigSchema:

    def test_defaults_and_nulls(self):
        assert PatientConfigSchema().load({"doctor": None, "extra": True}) == {
            "doctor": "", "diagnosis": "", "patient_card": "",
        }

    def test_patient_card_key(self):
        assert PatientConfigSchema().load({"patientCard": "card.pdf"})["patient_card"] == "card.pdf"


class TestAppointmentConfigSchema:

    def test_absent_keys_stay_absent(self):
        assert AppointmentConfigSchema().load({"notes": "x"}) == {"notes": "x"}

    def test_nulls_become_empty(self):
        assert AppointmentConfigSchema().load({"doctors": None, "diagnosis": None}) == {
            "doctors": [], "diagnosis": "",
        }


class TestLegacyTestSchema:

    def test_defaults(self):
        record = LegacyTestSchema().load({})
        assert record["test_id"] is None
        assert record["test_name"] == "Unknown Test"
        assert record["test_type"] == "questionnaire"
        assert record["test_data"] is None

    def test_empty_names_fall_back(self):
        record = LegacyTestSchema().load({"testName": "", "testType": None})
        assert (record["test_name"], record["test_type"]) == ("Unknown Test", "questionnaire")

    def test_timestamps(self):
        record = LegacyTestSchema().load({"createdAt": "2024-01-15T10:00:00Z"})
        assert record["created_at"] == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)

    def test_bad_timestamp(self):
        with pytest.raises(ValidationError):
            LegacyTestSchema().load({"createdAt": "yesterday"})
