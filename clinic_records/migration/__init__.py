"""One-shot migration of the legacy folder/JSON data store into the relational Store."""
from .backup import create_backup
from .detector import needs_migration
from .orchestrator import MigrationProgress, MigrationResult, MigrationStats, run_migration
from .roots import MigrationPaths, all_patient_roots
from .startup import StartupOutcome, migrate_on_startup

__all__ = [
    "MigrationPaths",
    "MigrationProgress",
    "MigrationResult",
    "MigrationStats",
    "StartupOutcome",
    "all_patient_roots",
    "create_backup",
    "migrate_on_startup",
    "needs_migration",
    "run_migration",
]
