"""
Tests for deciding whether the legacy migration has to run.
"""
from clinic_records.errors import FilesystemTimeout
from clinic_records.migration import needs_migration
from clinic_records.migration.legacy_fs import LegacyFS
from clinic_records.migration.resolvers import upsert_patient


def test_fresh_install_needs_nothing(store, paths):
    assert needs_migration(store, paths) is False


def test_settings_file_triggers_migration(store, paths, legacy):
    legacy.settings({"dictionaries": {"doctors": ["Smith"]}})
    assert needs_migration(store, paths) is True


def test_patient_config_in_default_root_triggers_migration(store, paths, legacy):
    legacy.patient("Doe_Jane_1990-01-01", config={"doctor": "Smith"})
    assert needs_migration(store, paths) is True


def test_patient_folder_without_config_is_not_legacy_data(store, paths, legacy):
    legacy.patient("Doe_Jane_1990-01-01")
    assert needs_migration(store, paths) is False


def test_patient_config_in_extra_storage_root(store, paths, legacy, tmp_path):
    extra = tmp_path / "drive_d" / "patients"
    legacy.patient("Doe_Jane_1990-01-01", config={}, root=str(extra))
    assert needs_migration(store, paths) is False

    store.add_storage_path(str(extra))
    store.commit()
    assert needs_migration(store, paths) is True


def test_missing_storage_root_is_ignored(store, paths, tmp_path):
    store.add_storage_path(str(tmp_path / "unplugged"))
    store.commit()
    assert needs_migration(store, paths) is False


def test_existing_patients_skip_migration_regardless_of_files(store, paths, legacy):
    legacy.settings({})
    legacy.patient("Doe_Jane_1990-01-01", config={})
    upsert_patient(store, "Someone_Else_1970-01-01")
    store.commit()
    assert needs_migration(store, paths) is False


class _StuckSettingsFS(LegacyFS):
    """Settings file lookups never answer in time."""

    def __init__(self, settings_file):
        super().__init__(timeout=1.0)
        self.settings_file = settings_file

    def is_file(self, path):
        if path == self.settings_file:
            raise FilesystemTimeout("is_file", path, self.timeout)
        return super().is_file(path)


def test_stuck_settings_file_falls_back_to_patient_scan(store, paths, legacy):
    legacy.settings({})
    with _StuckSettingsFS(paths.settings_file) as fs:
        assert needs_migration(store, paths, fs=fs) is False

    legacy.patient("Doe_Jane_1990-01-01", config={})
    with _StuckSettingsFS(paths.settings_file) as fs:
        assert needs_migration(store, paths, fs=fs) is True
