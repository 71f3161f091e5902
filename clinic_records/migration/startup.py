from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..errors import BackupError
from .backup import create_backup
from .detector import needs_migration
from .orchestrator import MigrationResult, ProgressObserver, run_migration
from .roots import MigrationPaths

logger = logging.getLogger(__name__)


@dataclass
class StartupOutcome:
    ran: bool
    backup_path: Optional[str] = None
    result: Optional[MigrationResult] = None


def migrate_on_startup(store, paths: MigrationPaths, on_progress: Optional[ProgressObserver] = None,
                       force: bool = False) -> StartupOutcome:
    """
    Detect, back up, then migrate. Nothing is written to the Store unless
    the backup completed.
    """
    if not force and not needs_migration(store, paths):
        logger.info("No legacy data migration needed")
        return StartupOutcome(ran=False)

    logger.info("Legacy data migration needed, creating backup...")
    try:
        backup_path = create_backup(paths)
    except BackupError as exc:
        logger.error("Backup failed, migration not started: %s", exc)
        result = MigrationResult(success=False, message=str(exc), errors=[str(exc)])
        return StartupOutcome(ran=False, result=result)

    logger.info("Backup created at: %s", backup_path)
    result = run_migration(store, paths, on_progress)
    if result.success:
        logger.info("Legacy data migration completed: %s", result.stats)
    else:
        logger.error(
            "Failed to migrate data: %s. Backup location: %s. Please contact support.",
            result.message, backup_path,
        )
    return StartupOutcome(ran=True, backup_path=backup_path, result=result)
