from __future__ import annotations

import logging
import os
import shutil
from datetime import datetime, timezone

from ..errors import BackupError
from .roots import MigrationPaths

logger = logging.getLogger(__name__)


def backup_folder_name(now: datetime = None) -> str:
    now = now or datetime.now(timezone.utc)
    return "backup_" + now.strftime("%Y-%m-%dT%H-%M-%S-%fZ")


def create_backup(paths: MigrationPaths) -> str:
    """
    Copy the whole legacy data directory next to it before anything is migrated.

    Returns the backup path. Raises BackupError on any failure; the
    migration must not start without a backup.
    """
    source = paths.app_data_dir
    target = os.path.join(paths.user_data_dir, backup_folder_name())
    logger.info("Creating backup of %s at %s", source, target)

    if not os.path.isdir(source):
        raise BackupError(f"legacy data directory not found: {source}")
    try:
        shutil.copytree(source, target)
    except (OSError, shutil.Error) as exc:
        raise BackupError(f"backup to {target} failed: {exc}") from exc

    logger.info("Backup created successfully")
    return target
