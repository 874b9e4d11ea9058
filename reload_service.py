#!/usr/bin/env python3
"""
Service reload utilities.
Runs the configured reload command (systemctl by default) and classifies
its outcome.
"""

import shlex
import subprocess
import logging
from dataclasses import dataclass
from typing import List, Optional

from config import UpstreamEditorConfig
from errors import ExternalCommandError, ReloadUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class ReloadResult:
    """Outcome of a successful reload."""
    command: str
    returncode: int
    output: str


def _combine_output(stdout: Optional[str], stderr: Optional[str]) -> str:
    parts = []
    for stream in (stdout, stderr):
        if isinstance(stream, bytes):
            stream = stream.decode(errors='replace')
        if stream:
            parts.append(stream.strip())
    return '\n'.join(p for p in parts if p)


class ServiceReloader:
    """Reload the consuming service through an external command."""

    def __init__(self, command: str, timeout: Optional[float] = None):
        self.command = command
        self.timeout = timeout or None

    @classmethod
    def from_config(cls, config: UpstreamEditorConfig) -> 'ServiceReloader':
        return cls(config.reload_command, config.reload_timeout)

    @property
    def argv(self) -> List[str]:
        return shlex.split(self.command)

    def reload(self) -> ReloadResult:
        """Run the reload command and wait for it."""
        argv = self.argv
        if not argv:
            raise ReloadUnavailableError(self.command, "no reload command configured", exit_code=1)

        logger.info(f"Reloading service: {self.command}")
        try:
            result = subprocess.run(argv, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError:
            logger.error(f"Reload command not found: {argv[0]}")
            raise ReloadUnavailableError(self.command, f"{argv[0]} not found", exit_code=127)
        except PermissionError:
            logger.error(f"Permission denied running: {argv[0]}")
            raise ReloadUnavailableError(self.command, "permission denied", exit_code=126)
        except subprocess.TimeoutExpired as e:
            logger.error(f"Reload command timed out after {self.timeout} seconds")
            raise ExternalCommandError(
                self.command, None, _combine_output(e.stdout, e.stderr),
                message=f"Reload command '{self.command}' timed out after {self.timeout:g} seconds"
            )

        output = _combine_output(result.stdout, result.stderr)
        if result.returncode != 0:
            logger.error(f"Reload command exited with status {result.returncode}: {output}")
            raise ExternalCommandError(self.command, result.returncode, output)

        logger.info("Service reloaded")
        return ReloadResult(self.command, result.returncode, output)


# Convenience function
def reload_service(config: UpstreamEditorConfig) -> ReloadResult:
    """Reload the service using the configured command."""
    return ServiceReloader.from_config(config).reload()
