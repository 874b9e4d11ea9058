#!/usr/bin/env python3
"""
Configuration management for the upstream editor.
Provides centralized configuration with environment variable support.
"""

import os
import sys
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from models import DEFAULT_BLOCK_NAME

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _default_config_path() -> Path:
    return Path.home() / "nginx-upstream-editor" / "upstream.conf"


def _default_backup_dir() -> Path:
    return Path.home() / "nginx-upstream-editor" / "backups"


def _default_log_dir() -> Path:
    return Path.home() / ".nginx-upstream-editor"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class UpstreamEditorConfig:
    """Configuration class for the upstream editor."""

    # Managed file
    config_path: Path = field(default_factory=_default_config_path)
    block_name: str = DEFAULT_BLOCK_NAME

    # Service reload
    reload_command: str = "systemctl reload nginx"
    reload_timeout: float = 60.0

    # Logging
    log_dir: Path = field(default_factory=_default_log_dir)
    log_level: str = "INFO"

    # Backup management
    create_backups: bool = False
    backup_dir: Path = field(default_factory=_default_backup_dir)
    max_backups: int = 10

    @classmethod
    def from_env(cls) -> 'UpstreamEditorConfig':
        """Load configuration from environment variables with defaults."""
        defaults = cls()
        return cls(
            config_path=Path(os.getenv("UPSTREAM_EDITOR_CONFIG_PATH", str(defaults.config_path))).expanduser(),
            block_name=os.getenv("UPSTREAM_EDITOR_BLOCK_NAME", defaults.block_name),
            reload_command=os.getenv("UPSTREAM_EDITOR_RELOAD_COMMAND", defaults.reload_command),
            reload_timeout=float(os.getenv("UPSTREAM_EDITOR_RELOAD_TIMEOUT", str(defaults.reload_timeout))),
            log_dir=Path(os.getenv("UPSTREAM_EDITOR_LOG_DIR", str(defaults.log_dir))).expanduser(),
            log_level=os.getenv("UPSTREAM_EDITOR_LOG_LEVEL", defaults.log_level).upper(),
            create_backups=_parse_bool(os.getenv("UPSTREAM_EDITOR_BACKUPS", "false")),
            backup_dir=Path(os.getenv("UPSTREAM_EDITOR_BACKUP_DIR", str(defaults.backup_dir))).expanduser(),
            max_backups=int(os.getenv("UPSTREAM_EDITOR_MAX_BACKUPS", str(defaults.max_backups)))
        )

    @classmethod
    def from_file(cls, settings_file: Path) -> 'UpstreamEditorConfig':
        """Load configuration from a settings file (simple key=value format)."""
        config = cls()

        if not settings_file.exists():
            return config

        try:
            with open(settings_file, 'r') as f:
                for line in f:
                    line = line.strip()
                    if not line or line.startswith('#') or '=' not in line:
                        continue
                    key, value = line.split('=', 1)
                    key = key.strip().lower()
                    value = value.strip().strip('"\'')

                    if key == 'config_path':
                        config.config_path = Path(value).expanduser()
                    elif key == 'block_name':
                        config.block_name = value
                    elif key == 'reload_command':
                        config.reload_command = value
                    elif key == 'reload_timeout':
                        config.reload_timeout = float(value)
                    elif key == 'log_dir':
                        config.log_dir = Path(value).expanduser()
                    elif key == 'log_level':
                        config.log_level = value.upper()
                    elif key == 'create_backups':
                        config.create_backups = _parse_bool(value)
                    elif key == 'backup_dir':
                        config.backup_dir = Path(value).expanduser()
                    elif key == 'max_backups':
                        config.max_backups = int(value)
                    else:
                        logger.warning(f"Unknown setting '{key}' in {settings_file}")

        except (OSError, ValueError) as e:
            logger.warning(f"Error reading settings file {settings_file}: {e}")

        return config

    def setup_logging(self, verbose: bool = False) -> None:
        """Setup logging: full log to file, warnings (or everything if verbose) to stderr."""
        level = getattr(logging, self.log_level.upper(), logging.INFO)

        console = logging.StreamHandler(sys.stderr)
        console.setLevel(logging.DEBUG if verbose else logging.WARNING)
        handlers = [console]

        file_error = None
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(self.log_dir / "upstream-editor.log"))
        except OSError as e:
            file_error = e

        logging.basicConfig(
            level=logging.DEBUG if verbose else level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=handlers,
            force=True
        )

        if file_error is not None:
            logger.warning(f"File logging disabled: {file_error}")

    def validate(self) -> list[str]:
        """Validate configuration and return list of issues."""
        issues = []

        if not self.block_name or any(c.isspace() or c in '{};' for c in self.block_name):
            issues.append(f"Invalid block name: '{self.block_name}'")

        if not self.reload_command.strip():
            issues.append("reload_command must not be empty")

        if self.reload_timeout < 0:
            issues.append("reload_timeout must not be negative")

        if self.max_backups < 1:
            issues.append("max_backups must be at least 1")

        if self.log_level not in VALID_LOG_LEVELS:
            issues.append(f"Invalid log level: {self.log_level}")

        return issues


def get_config(settings_file: Optional[Path] = None) -> UpstreamEditorConfig:
    """Get configuration instance with precedence: env vars > settings file > defaults."""
    if settings_file is None:
        settings_file = _default_log_dir() / "settings.ini"

    config = UpstreamEditorConfig.from_file(settings_file)

    # Override with environment variables
    env_config = UpstreamEditorConfig.from_env()
    default_config = UpstreamEditorConfig()

    for field_name in config.__dataclass_fields__:
        env_value = getattr(env_config, field_name)

        # If env value differs from default, use it
        if env_value != getattr(default_config, field_name):
            setattr(config, field_name, env_value)

    issues = config.validate()
    if issues:
        logger.warning(f"Configuration issues found: {issues}")

    return config
