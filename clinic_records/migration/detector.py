from __future__ import annotations

import logging
import os

from ..errors import FilesystemTimeout
from .legacy_fs import PATIENT_CONFIG, LegacyFS
from .roots import MigrationPaths, all_patient_roots

logger = logging.getLogger(__name__)


def needs_migration(store, paths: MigrationPaths, fs: LegacyFS = None) -> bool:
    """
    True when legacy data exists and the Store holds no patients yet.

    The patient count is checked first so the common already-migrated start
    never touches the filesystem.
    """
    if store.count_patients() > 0:
        return False

    owns_fs = fs is None
    fs = fs or LegacyFS(paths.fs_timeout)
    try:
        try:
            if fs.is_file(paths.settings_file):
                logger.info("Legacy settings file found: %s", paths.settings_file)
                return True
        except FilesystemTimeout as exc:
            logger.warning("Cannot check legacy settings file, scanning patients instead: %s", exc)

        for root in all_patient_roots(store, paths):
            try:
                folders = fs.list_dirs(root)
            except (OSError, FilesystemTimeout) as exc:
                logger.debug("Cannot scan patients root %s: %s", root, exc)
                continue
            for folder in folders:
                config = os.path.join(root, folder, PATIENT_CONFIG)
                try:
                    if fs.is_file(config):
                        logger.info("Legacy patient config found: %s", config)
                        return True
                except FilesystemTimeout:
                    continue
        return False
    finally:
        if owns_fs:
            fs.close()
