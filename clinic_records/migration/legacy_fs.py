"""
Read-only access to the legacy folder store.

Every directory listing and file read runs on a small worker pool and is
awaited with a timeout, so one stuck file cannot hang the whole migration.
"""
from __future__ import annotations

import json
import logging
import os
import re
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import List, Tuple

from marshmallow import Schema, ValidationError

from ..errors import FilesystemTimeout, LegacyFormatError

logger = logging.getLogger(__name__)

APP_CONFIG = "app.config"
PATIENT_CONFIG = "patient.config"
APPOINTMENT_CONFIG = "appointment.config"
TESTS_FOLDER = "tests"

DATE_FOLDER = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_date_folder(name: str) -> bool:
    return bool(DATE_FOLDER.match(name))


def split_folder_name(folder_name: str) -> Tuple[str, str, str]:
    """
    Split ``Surname_Name_YYYY-MM-DD`` into (surname, name, birthdate).

    Missing segments become empty strings; extra segments are ignored.
    """
    parts = folder_name.split("_")
    parts += [""] * (3 - len(parts))
    return parts[0], parts[1], parts[2]


def _list_dirs(path: str) -> List[str]:
    with os.scandir(path) as entries:
        return sorted(e.name for e in entries if e.is_dir())


def _list_files(path: str, suffix: str) -> List[str]:
    with os.scandir(path) as entries:
        return sorted(e.name for e in entries if e.is_file() and e.name.endswith(suffix))


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8-sig") as fh:
        return fh.read()


class LegacyFS:
    """Filesystem reads bounded by ``timeout`` seconds each."""

    def __init__(self, timeout: float = 10.0, workers: int = 4):
        self.timeout = timeout
        self._pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="legacy-fs")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self) -> None:
        # a worker stuck on a dead mount must not block shutdown
        self._pool.shutdown(wait=False, cancel_futures=True)

    def _run(self, operation: str, path: str, fn, *args):
        future = self._pool.submit(fn, *args)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeout:
            future.cancel()
            logger.warning("%s timed out after %ss: %s", operation, self.timeout, path)
            raise FilesystemTimeout(operation, path, self.timeout) from None

    def exists(self, path: str) -> bool:
        return self._run("exists", path, os.path.exists, path)

    def is_file(self, path: str) -> bool:
        return self._run("is_file", path, os.path.isfile, path)

    def list_dirs(self, path: str) -> List[str]:
        return self._run("list_dirs", path, _list_dirs, path)

    def list_files(self, path: str, suffix: str = "") -> List[str]:
        return self._run("list_files", path, _list_files, path, suffix)

    def read_text(self, path: str) -> str:
        return self._run("read", path, _read_text, path)

    def read_json(self, path: str):
        try:
            text = self.read_text(path)
        except UnicodeDecodeError as exc:
            raise LegacyFormatError(path, f"not UTF-8 text ({exc.reason})") from exc
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise LegacyFormatError(path, f"invalid JSON ({exc.msg} at line {exc.lineno})") from exc

    def read_config(self, path: str, schema: Schema, optional: bool = True) -> dict:
        """
        Read and decode a legacy JSON config file.

        A missing optional file decodes as ``{}`` so the schema's defaults
        apply. A file that exists but does not parse or does not match the
        schema raises LegacyFormatError.
        """
        try:
            raw = self.read_json(path)
        except FileNotFoundError:
            if not optional:
                raise
            return schema.load({})
        try:
            return schema.load(raw)
        except ValidationError as exc:
            raise LegacyFormatError(path, "unexpected structure", exc.messages) from exc
