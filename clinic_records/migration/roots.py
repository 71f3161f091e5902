from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Mapping

from .legacy_fs import APP_CONFIG


@dataclass(frozen=True)
class MigrationPaths:
    """Where the legacy data lives for one installation."""

    user_data_dir: str
    app_data_dir: str
    fs_timeout: float = 10.0

    @classmethod
    def from_config(cls, config: Mapping) -> "MigrationPaths":
        return cls(
            user_data_dir=config["USER_DATA_DIR"],
            app_data_dir=config["APP_DATA_DIR"],
            fs_timeout=float(config.get("FS_TIMEOUT_SECONDS", 10.0)),
        )

    @property
    def settings_file(self) -> str:
        return os.path.join(self.app_data_dir, "settings", APP_CONFIG)

    @property
    def default_patients_root(self) -> str:
        return os.path.join(self.app_data_dir, "patients")


def all_patient_roots(store, paths: MigrationPaths) -> List[str]:
    """
    Every patients root to scan: the default root, then each configured
    storage path in the order it was added. Before migration the storage
    path table is usually empty, which leaves just the default root.
    """
    roots = [paths.default_patients_root]
    for storage_path in store.storage_paths():
        if storage_path.path not in roots:
            roots.append(storage_path.path)
    return roots
