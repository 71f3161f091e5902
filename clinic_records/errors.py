"""Exceptions raised by the legacy data migration."""


class MigrationError(Exception):
    """Base class for legacy migration failures."""


class BackupError(MigrationError):
    """The legacy data directory could not be copied. Always fatal."""


class LegacyFormatError(MigrationError):
    """A legacy JSON file exists but is not valid JSON or has the wrong shape."""

    def __init__(self, path, reason, details=None):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason
        self.details = details


class FilesystemTimeout(MigrationError):
    """A single legacy filesystem operation took longer than the configured limit."""

    def __init__(self, operation: str, path, timeout: float):
        super().__init__(f"{operation} timed out after {timeout:g}s: {path}")
        self.operation = operation
        self.path = path
        self.timeout = timeout


class MissingPatientError(MigrationError):
    """Legacy data refers to a patient folder that has no Patient row."""

    def __init__(self, folder_path: str):
        super().__init__(f"patient {folder_path!r} was not migrated")
        self.folder_path = folder_path
