"""
Runs the one-shot legacy migration: settings, patients, appointments, tests, finalize.

Each stage is committed as one transaction. A record failure only rolls
back that record; anything escaping a stage aborts the run, rolls back the
unfinished stage and is reported through the returned result.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..models import Diagnosis, Doctor
from .legacy_fs import LegacyFS
from .roots import MigrationPaths, all_patient_roots
from .stages import StageContext, TestMigrator, describe, migrate_appointments, migrate_patients, migrate_settings

logger = logging.getLogger(__name__)

TOTAL_STAGES = 5


@dataclass
class MigrationStats:
    doctors: int = 0
    diagnoses: int = 0
    patients: int = 0
    appointments: int = 0
    tests: int = 0


@dataclass
class MigrationResult:
    success: bool = False
    message: str = ""
    stats: MigrationStats = field(default_factory=MigrationStats)
    errors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class MigrationProgress:
    step: str
    current: int
    total: int = TOTAL_STAGES

    @property
    def percentage(self) -> int:
        return round(self.current / self.total * 100)


ProgressObserver = Callable[[MigrationProgress], None]


def _notify(on_progress: Optional[ProgressObserver], step: str, current: int) -> None:
    logger.info("%s (%d/%d)", step, current, TOTAL_STAGES)
    if on_progress is None:
        return
    progress = MigrationProgress(step, current)
    try:
        on_progress(progress)
    except Exception:
        # fire-and-forget
        logger.exception("Progress observer failed on %r", step)


class _CreatedCounter:
    """Doctor/diagnosis rows created by this run, from any stage."""

    def __init__(self, store):
        self.store = store
        self.doctors = store.count(Doctor)
        self.diagnoses = store.count(Diagnosis)

    def update(self, stats: MigrationStats) -> None:
        stats.doctors = self.store.count(Doctor) - self.doctors
        stats.diagnoses = self.store.count(Diagnosis) - self.diagnoses


def run_migration(store, paths: MigrationPaths, on_progress: Optional[ProgressObserver] = None,
                  fs: Optional[LegacyFS] = None) -> MigrationResult:
    """Migrate every legacy root into ``store``. Never raises; inspect ``result.success``."""
    result = MigrationResult()
    owns_fs = fs is None
    fs = fs or LegacyFS(paths.fs_timeout)
    ctx = StageContext(store, fs, result)
    created = None

    def commit_stage():
        store.commit()
        created.update(result.stats)

    try:
        created = _CreatedCounter(store)
        roots = all_patient_roots(store, paths)
        logger.info("Scanning patient roots: %s", roots)

        _notify(on_progress, "Migrating settings", 1)
        migrate_settings(ctx, paths.settings_file)
        commit_stage()

        _notify(on_progress, "Migrating patients", 2)
        for root in roots:
            migrate_patients(ctx, root)
        commit_stage()

        _notify(on_progress, "Migrating appointments", 3)
        for root in roots:
            migrate_appointments(ctx, root)
        commit_stage()

        _notify(on_progress, "Migrating tests", 4)
        tests = TestMigrator(ctx)
        for root in roots:
            tests.migrate_root(root)
        commit_stage()

        _notify(on_progress, "Finalizing migration", 5)
        result.success = True
        result.message = "Migration completed successfully"
        logger.info("Migration completed: %s (%d errors)", result.stats, len(result.errors))
    except Exception as exc:
        logger.exception("Migration failed")
        store.rollback()
        if created is not None:
            created.update(result.stats)
        result.success = False
        result.message = describe(exc)
        result.errors.append(result.message)
    finally:
        if owns_fs:
            fs.close()
    return result
