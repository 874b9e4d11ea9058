#!/usr/bin/env python3
"""
Repository pattern implementation for the managed upstream file.
Loads the file into an UpstreamDocument and writes it back atomically.
"""

import os
import shutil
import tempfile
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from datetime import datetime

from config import UpstreamEditorConfig
from errors import ConfigExistsError, ConfigNotFoundError, ConfigPermissionError, ConfigWriteError
from models import UpstreamDocument, BackupInfo

NEW_FILE_MODE = 0o644


class UpstreamRepository(ABC):
    """Abstract repository interface for the upstream config file."""

    @abstractmethod
    def exists(self) -> bool:
        """Check whether the managed file exists."""
        pass

    @abstractmethod
    def load(self) -> UpstreamDocument:
        """Read and parse the managed file."""
        pass

    @abstractmethod
    def save(self, document: UpstreamDocument, exclusive: bool = False) -> Optional[str]:
        """Render and persist a document, returning the backup path if one was made.

        With exclusive set the write fails instead of replacing an existing file.
        """
        pass

    @abstractmethod
    def create_backup(self) -> BackupInfo:
        """Create a backup of the managed file."""
        pass


class FileUpstreamRepository(UpstreamRepository):
    """File-based implementation of the upstream repository."""

    def __init__(self, config: UpstreamEditorConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)

    @property
    def path(self) -> Path:
        return self.config.config_path

    def exists(self) -> bool:
        return self.path.exists()

    def read_text(self) -> str:
        """Read the whole managed file."""
        try:
            with open(self.path, 'r', encoding='utf-8', newline='') as f:
                return f.read()
        except FileNotFoundError:
            self.logger.error(f"Upstream config file not found: {self.path}")
            raise ConfigNotFoundError(self.path)
        except PermissionError:
            self.logger.error(f"Permission denied reading: {self.path}")
            raise ConfigPermissionError(self.path, "read")

    def load(self) -> UpstreamDocument:
        """Read the managed file and parse its upstream block."""
        text = self.read_text()
        document = UpstreamDocument.parse(text, self.config.block_name)
        self.logger.debug(f"Loaded {len(document.entries)} servers from {self.path}")
        return document

    def save(self, document: UpstreamDocument, exclusive: bool = False) -> Optional[str]:
        """Render a document and replace the managed file with it."""
        return self._write_file_atomically(document.render(), exclusive)

    def _write_file_atomically(self, content: str, exclusive: bool = False) -> Optional[str]:
        """Write the managed file through a temporary file and a rename (or link when exclusive)."""
        backup_path = None
        if not exclusive and self.config.create_backups and self.path.exists():
            backup_path = self.create_backup().path

        tmp_path = None
        try:
            # Temporary file must live in the same directory for the rename to be atomic
            with tempfile.NamedTemporaryFile(
                mode='w',
                encoding='utf-8',
                newline='',
                delete=False,
                dir=self.path.parent,
                prefix='.upstream_tmp_'
            ) as tmp:
                tmp_path = tmp.name
                tmp.write(content)
                tmp.flush()
                os.fsync(tmp.fileno())

            if not exclusive and self.path.exists():
                shutil.copymode(self.path, tmp_path)
            else:
                os.chmod(tmp_path, NEW_FILE_MODE)

            if exclusive:
                # link fails with FileExistsError instead of replacing the target
                os.link(tmp_path, self.path)
            else:
                os.replace(tmp_path, self.path)

        except OSError as e:
            self._remove_temp_file(tmp_path)
            self.logger.error(f"Failed to write {self.path}: {e}")
            if exclusive and isinstance(e, FileExistsError):
                raise ConfigExistsError(self.path) from e
            if isinstance(e, PermissionError):
                raise ConfigPermissionError(self.path, "write") from e
            raise ConfigWriteError(self.path, str(e)) from e

        if exclusive:
            self._remove_temp_file(tmp_path)
        self.logger.info(f"Successfully updated {self.path}")
        return backup_path

    def _remove_temp_file(self, tmp_path: Optional[str]):
        if tmp_path and os.path.exists(tmp_path):
            try:
                os.unlink(tmp_path)
            except OSError as cleanup_error:
                self.logger.warning(f"Could not remove temporary file {tmp_path}: {cleanup_error}")

    def create_backup(self) -> BackupInfo:
        """Create a timestamped backup of the managed file."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        backup_path = self.config.backup_dir / f"{self.path.stem}_{timestamp}.conf.bak"

        try:
            self.config.backup_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(self.path, backup_path)
        except PermissionError as e:
            self.logger.error(f"Failed to create backup: {e}")
            raise ConfigPermissionError(self.config.backup_dir, "write") from e
        except OSError as e:
            self.logger.error(f"Failed to create backup: {e}")
            raise ConfigWriteError(backup_path, str(e)) from e

        self._cleanup_old_backups()
        self.logger.debug(f"Created backup {backup_path}")
        return BackupInfo.from_file(str(backup_path), str(self.path))

    def _cleanup_old_backups(self):
        """Remove old backup files to keep only max_backups."""
        try:
            backup_files = list(self.config.backup_dir.glob(f"{self.path.stem}_*.conf.bak"))
            if len(backup_files) > self.config.max_backups:
                # Oldest first; names sort chronologically
                backup_files.sort(key=lambda x: x.name)

                for backup_file in backup_files[:-self.config.max_backups]:
                    backup_file.unlink()
                    self.logger.debug(f"Removed old backup: {backup_file}")

        except OSError as e:
            self.logger.warning(f"Failed to cleanup old backups: {e}")
