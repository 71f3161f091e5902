"""
Tests for bounded legacy filesystem access and folder-name parsing.
"""
import time

import pytest

from clinic_records.errors import FilesystemTimeout, LegacyFormatError
from clinic_records.migration.legacy_fs import LegacyFS, is_date_folder, split_folder_name
from clinic_records.schemas import PatientConfigSchema


@pytest.mark.parametrize("name, expected", [
    ("Ivanov_Petro_1980-05-01", ("Ivanov", "Petro", "1980-05-01")),
    ("Ivanov_Petro", ("Ivanov", "Petro", "")),
    ("Ivanov", ("Ivanov", "", "")),
    ("A_B_C_D", ("A", "B", "C")),
])
def test_split_folder_name(name, expected):
    assert split_folder_name(name) == expected


@pytest.mark.parametrize("name, expected", [
    ("2024-01-15", True),
    ("2024-1-15", False),
    ("video", False),
    ("2024-01-15_old", False),
])
def test_is_date_folder(name, expected):
    assert is_date_folder(name) is expected


@pytest.fixture
def fs():
    with LegacyFS(timeout=2) as legacy_fs:
        yield legacy_fs


def test_list_dirs_returns_sorted_directories(fs, tmp_path):
    (tmp_path / "b").mkdir()
    (tmp_path / "a").mkdir()
    (tmp_path / "file.txt").write_text("x")
    assert fs.list_dirs(str(tmp_path)) == ["a", "b"]


def test_list_files_filters_by_suffix(fs, tmp_path):
    (tmp_path / "one.json").write_text("{}")
    (tmp_path / "two.txt").write_text("")
    (tmp_path / "dir.json").mkdir()
    assert fs.list_files(str(tmp_path), ".json") == ["one.json"]


def test_list_dirs_of_missing_path_raises(fs, tmp_path):
    with pytest.raises(FileNotFoundError):
        fs.list_dirs(str(tmp_path / "missing"))


def test_read_json_tolerates_bom(fs, tmp_path):
    path = tmp_path / "patient.config"
    path.write_bytes(b'\xef\xbb\xbf{"doctor": "Smith"}')
    assert fs.read_json(str(path)) == {"doctor": "Smith"}


def test_read_json_invalid(fs, tmp_path):
    path = tmp_path / "patient.config"
    path.write_text("{doctor: Smith}")
    with pytest.raises(LegacyFormatError) as info:
        fs.read_json(str(path))
    assert info.value.path == str(path)


def test_read_config_missing_file_gives_defaults(fs, tmp_path):
    config = fs.read_config(str(tmp_path / "patient.config"), PatientConfigSchema())
    assert config == {"doctor": "", "diagnosis": "", "patient_card": ""}


def test_read_config_required_file(fs, tmp_path):
    with pytest.raises(FileNotFoundError):
        fs.read_config(str(tmp_path / "app.config"), PatientConfigSchema(), optional=False)


def test_read_config_wrong_shape(fs, tmp_path):
    path = tmp_path / "patient.config"
    path.write_text('{"doctor": ["Smith"]}')
    with pytest.raises(LegacyFormatError) as info:
        fs.read_config(str(path), PatientConfigSchema())
    assert "doctor" in info.value.details


def test_slow_operation_times_out():
    fs = LegacyFS(timeout=0.05)
    try:
        with pytest.raises(FilesystemTimeout) as info:
            fs._run("read", "/mnt/slow/file", time.sleep, 1)
        assert info.value.path == "/mnt/slow/file"
        # the pool is still usable for the next file
        assert fs._run("read", "/fast", lambda: "ok") == "ok"
    finally:
        fs.close()
