#!/usr/bin/env python3
"""
Operation layer for the upstream config file.

Every operation loads the file fresh, applies exactly one change to the
parsed document and writes the whole file back. Failures raise one of the
errors in errors.py and leave the file untouched.

No locking is done between separate invocations: two concurrent edits of
the same file race and the last writer wins. Create is the exception: the
new file is linked into place, so it never overwrites a file that appeared
after the existence check.
"""

import os
import logging
from typing import List, Optional

from config import UpstreamEditorConfig
from errors import (
    ConfigExistsError, ConfigNotFoundError, ConfigPermissionError,
    ConfigWriteError, DuplicateServerError, InvalidArgumentsError, ServerNotFoundError
)
from models import ServerEntry, UpstreamDocument, OperationResult
from repository import UpstreamRepository, FileUpstreamRepository


class UpstreamEditor:
    """Create, list, add, remove and clear servers in the upstream block."""

    def __init__(self, config: UpstreamEditorConfig,
                 repository: Optional[UpstreamRepository] = None):
        self.config = config
        self.repository = repository or FileUpstreamRepository(config)
        self.logger = logging.getLogger(__name__)

    @property
    def path(self):
        return self.config.config_path

    def _preflight(self) -> None:
        """Check that the managed file exists and is readable and writable."""
        if not self.path.exists():
            raise ConfigNotFoundError(self.path)
        if not os.access(self.path, os.R_OK):
            raise ConfigPermissionError(self.path, "read")
        if not os.access(self.path, os.W_OK):
            raise ConfigPermissionError(self.path, "write")

    def create(self) -> OperationResult:
        """Create a new file holding an empty upstream block."""
        if self.path.exists():
            raise ConfigExistsError(self.path)

        parent = self.path.parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except PermissionError as e:
            self.logger.error(f"Cannot create directory {parent}: {e}")
            raise ConfigPermissionError(self.path, "create") from e
        except OSError as e:
            # e.g. a regular file sits where the directory should be
            self.logger.error(f"Cannot create directory {parent}: {e}")
            raise ConfigWriteError(self.path, str(e)) from e

        if not os.access(parent, os.W_OK | os.X_OK):
            raise ConfigPermissionError(self.path, "create")

        self.repository.save(UpstreamDocument.empty(self.config.block_name), exclusive=True)
        self.logger.info(f"Created {self.path}")

        return OperationResult(
            success=True,
            message=f"File {self.path} created successfully."
        )

    def list_servers(self) -> List[ServerEntry]:
        """Return the block's servers in file order."""
        self._preflight()
        return self.repository.load().entries

    def add_server(self, host: str, port: str) -> OperationResult:
        """Insert (host, port) at the top of the block."""
        entry = ServerEntry(host, port)
        if not entry.is_renderable():
            raise InvalidArgumentsError(
                f"Cannot write server '{host}:{port}': host and port must be non-empty "
                f"and contain no whitespace, ';', braces or '#'"
            )

        self._preflight()
        document = self.repository.load()

        if document.find(host, port):
            self.logger.info(f"Server {entry.address} already present, nothing written")
            raise DuplicateServerError(host, port)

        document.add_entry(entry)
        backup_path = self.repository.save(document)
        self.logger.info(f"Added server {entry.address} to {self.path}")

        return OperationResult(
            success=True,
            message=f"Server {entry.address} added to upstream config file",
            backup_created=backup_path,
            entries_modified=[entry]
        )

    def remove_server(self, host: str, port: str) -> OperationResult:
        """Delete (host, port) from the block."""
        self._preflight()
        document = self.repository.load()

        removed = document.remove_entry(host, port)
        if not removed:
            raise ServerNotFoundError(host, port)

        warnings = []
        if len(removed) > 1:
            warnings.append(f"Removed {len(removed)} duplicate lines for {host}:{port}")

        backup_path = self.repository.save(document)
        self.logger.info(f"Removed server {host}:{port} from {self.path}")

        return OperationResult(
            success=True,
            message=f"Server {host}:{port} removed from upstream config file",
            backup_created=backup_path,
            entries_modified=removed,
            warnings=warnings
        )

    def clear(self) -> OperationResult:
        """Remove every server, leaving an empty block."""
        self._preflight()
        document = self.repository.load()

        removed = document.clear()
        backup_path = self.repository.save(document)
        self.logger.info(f"Cleared {len(removed)} servers from {self.path}")

        return OperationResult(
            success=True,
            message="All servers removed from upstream config file",
            backup_created=backup_path,
            entries_modified=removed
        )
