"""
Pytest configuration and shared fixtures.
"""
import json
import os

import pytest

from clinic_records import create_app
from clinic_records.config import TestConfig
from clinic_records.extensions import db
from clinic_records.migration import MigrationPaths
from clinic_records.store import Store


@pytest.fixture
def app(tmp_path):
    """App bound to its own in-memory Store and a temporary user-data folder."""
    user_data = tmp_path / "userData"
    app_data = user_data / "appData"
    app_data.mkdir(parents=True)

    class _Config(TestConfig):
        USER_DATA_DIR = str(user_data)
        APP_DATA_DIR = str(app_data)

    app = create_app(_Config)
    with app.app_context():
        yield app
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def store(app):
    return Store(db.session)


@pytest.fixture
def paths(app):
    return MigrationPaths.from_config(app.config)


@pytest.fixture
def client(app):
    return app.test_client()


class LegacyTree:
    """Builds legacy folder stores on disk."""

    def __init__(self, paths):
        self.paths = paths

    @staticmethod
    def _write(path, data):
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(data if isinstance(data, str) else json.dumps(data))
        return path

    def settings(self, data):
        return self._write(self.paths.settings_file, data)

    def patient(self, folder, config=None, root=None):
        path = os.path.join(root or self.paths.default_patients_root, folder)
        os.makedirs(path, exist_ok=True)
        if config is not None:
            self._write(os.path.join(path, "patient.config"), config)
        return path

    def appointment(self, folder, date, config=None, root=None):
        path = os.path.join(root or self.paths.default_patients_root, folder, date)
        os.makedirs(path, exist_ok=True)
        if config is not None:
            self._write(os.path.join(path, "appointment.config"), config)
        return path

    def test_file(self, folder, date, name, data, root=None):
        path = os.path.join(root or self.paths.default_patients_root, folder, date, "tests", name)
        return self._write(path, data)


@pytest.fixture
def legacy(paths):
    return LegacyTree(paths)
