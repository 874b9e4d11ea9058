#!/usr/bin/env python3
"""
Error kinds raised by the upstream editor.
Each failure mode maps to one exception class so the CLI can pick the
message, hint and exit status without inspecting strings.
"""

from typing import Optional


class UpstreamEditorError(Exception):
    """Base class for all upstream editor failures."""

    exit_code: int = 1
    show_usage: bool = False

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint


class ConfigNotFoundError(UpstreamEditorError):
    """The managed config file does not exist."""

    show_usage = True

    def __init__(self, path):
        super().__init__(
            f"Cannot open the upstream config file at '{path}'",
            hint="Use 'upstream-editor create' to create an empty config file."
        )
        self.path = path


class ConfigExistsError(UpstreamEditorError):
    """Create was asked for a file that already exists."""

    show_usage = True

    def __init__(self, path):
        super().__init__(f"{path} already exists.")
        self.path = path


class ConfigPermissionError(UpstreamEditorError):
    """The file or its directory cannot be read, written or created."""

    def __init__(self, path, action: str = "write"):
        super().__init__(
            f"Cannot {action} the upstream config file at '{path}'",
            hint=f"Please verify {action} permissions for the config file."
        )
        self.path = path
        self.action = action


class ConfigWriteError(UpstreamEditorError):
    """Writing the config file failed for a reason other than permissions."""

    def __init__(self, path, reason: str):
        super().__init__(f"Failed to write {path}: {reason}")
        self.path = path


class MalformedDocumentError(UpstreamEditorError):
    """The upstream block markers are missing or corrupt."""

    def __init__(self, message: str):
        super().__init__(
            message,
            hint="Fix the upstream block by hand; the file was not modified."
        )


class DuplicateServerError(UpstreamEditorError):
    """Add was asked for a (host, port) pair that is already present."""

    def __init__(self, host: str, port: str):
        super().__init__(f"Server {host}:{port} already exists")
        self.host = host
        self.port = port


class ServerNotFoundError(UpstreamEditorError):
    """Remove was asked for a (host, port) pair that is not present."""

    def __init__(self, host: str, port: str):
        super().__init__(f"Server {host}:{port} does not exist in the upstream config file")
        self.host = host
        self.port = port


class InvalidArgumentsError(UpstreamEditorError):
    """Wrong number or shape of command arguments."""

    show_usage = True


class ExternalCommandError(UpstreamEditorError):
    """The reload command ran but failed or timed out."""

    def __init__(self, command: str, returncode: Optional[int], output: str = "",
                 message: Optional[str] = None):
        if message is None:
            message = f"Reload command '{command}' exited with status {returncode}"
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.output = output
        # Negative codes mean the child was killed by a signal
        if returncode is not None and returncode > 0:
            self.exit_code = returncode


class ReloadUnavailableError(UpstreamEditorError):
    """The reload command could not be started at all."""

    def __init__(self, command: str, reason: str, exit_code: int = 127):
        super().__init__(
            f"Cannot run reload command '{command}': {reason}",
            hint="Reloading requires the service manager and root privileges (try sudo)."
        )
        self.command = command
        self.exit_code = exit_code
