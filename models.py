#!/usr/bin/env python3
"""
Data models for the upstream editor.
Parses the managed file into a document made of preamble, one upstream
block and epilogue, and renders it back without touching anything outside
the block's server entries.
"""

import re
import logging
from dataclasses import dataclass, field
from typing import List, Optional
from datetime import datetime
from enum import Enum

from errors import MalformedDocumentError

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_NAME = "servers"
SERVER_KEYWORD = "server"
ENTRY_INDENT = "    "
CLOSING_MARKER = "}"

# host runs up to the last colon; neither part may hold whitespace, a terminator,
# a brace or a comment sign, and port may not hold a colon
SERVER_LINE_PATTERN = re.compile(
    r'^\s*' + SERVER_KEYWORD + r'\s+(?P<host>[^\s;{}#]+):(?P<port>[^\s:;{}#]+)\s*;\s*$'
)


class LineType(Enum):
    """Kinds of lines inside the upstream block."""
    SERVER = "server"
    OTHER = "other"


@dataclass
class ServerEntry:
    """A single backend address inside the upstream block."""

    host: str
    port: str
    line_number: Optional[int] = field(default=None, compare=False)
    original_line: Optional[str] = field(default=None, compare=False)

    def __post_init__(self):
        if self.original_line is None:
            self.original_line = self.to_line()

    @classmethod
    def from_line(cls, line: str, line_number: Optional[int] = None) -> Optional['ServerEntry']:
        """Parse a server entry from a block line, or None if it is not one."""
        match = SERVER_LINE_PATTERN.match(line.rstrip('\r\n'))
        if not match:
            return None

        return cls(
            host=match.group('host'),
            port=match.group('port'),
            line_number=line_number,
            original_line=line.rstrip('\r\n')
        )

    def to_line(self) -> str:
        """Convert entry to its canonical config line (without newline)."""
        return f"{ENTRY_INDENT}{SERVER_KEYWORD} {self.host}:{self.port};"

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def matches(self, host: str, port: str) -> bool:
        """Literal comparison of the (host, port) pair."""
        return self.host == host and self.port == port

    def is_renderable(self) -> bool:
        """Check that the canonical line parses back to the same pair."""
        parsed = ServerEntry.from_line(self.to_line())
        return parsed is not None and parsed.matches(self.host, self.port)

    def __str__(self) -> str:
        return self.address


@dataclass
class BlockLine:
    """Represents any line between the block markers."""

    content: str
    line_number: Optional[int]
    line_type: LineType
    server: Optional[ServerEntry] = None

    @classmethod
    def from_line(cls, line: str, line_number: int) -> 'BlockLine':
        """Create a block line from raw file content."""
        server = ServerEntry.from_line(line, line_number)
        if server:
            return cls(line, line_number, LineType.SERVER, server)
        return cls(line, line_number, LineType.OTHER)

    @classmethod
    def for_server(cls, entry: ServerEntry, newline: str = "\n") -> 'BlockLine':
        """Create a freshly rendered line for a new entry."""
        return cls(entry.to_line() + newline, None, LineType.SERVER, entry)


@dataclass
class UpstreamDocument:
    """
    In-memory form of the managed file.

    Lines before the opening marker and after the closing marker are kept
    verbatim, as is every line of the block that is not a server entry, so
    render() reproduces the parsed text exactly until the block is mutated.
    """

    block_name: str = DEFAULT_BLOCK_NAME
    preamble: List[str] = field(default_factory=list)
    opening_line: str = ""
    body: List[BlockLine] = field(default_factory=list)
    closing_line: str = CLOSING_MARKER + "\n"
    epilogue: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.opening_line:
            self.opening_line = self.opening_marker(self.block_name) + "\n"

    @staticmethod
    def opening_marker(block_name: str) -> str:
        return f"upstream {block_name} {{"

    @staticmethod
    def _opening_pattern(block_name: str):
        return re.compile(r'^\s*upstream\s+' + re.escape(block_name) + r'\s*\{\s*$')

    @classmethod
    def empty(cls, block_name: str = DEFAULT_BLOCK_NAME) -> 'UpstreamDocument':
        """A document holding only an empty block."""
        return cls(block_name=block_name)

    @classmethod
    def parse(cls, text: str, block_name: str = DEFAULT_BLOCK_NAME) -> 'UpstreamDocument':
        """Split file content into preamble, block and epilogue."""
        lines = text.splitlines(keepends=True)
        opening_pattern = cls._opening_pattern(block_name)
        marker = cls.opening_marker(block_name)

        openings = [i for i, line in enumerate(lines) if opening_pattern.match(line.rstrip('\r\n'))]
        if not openings:
            raise MalformedDocumentError(f"Opening marker '{marker}' not found")
        if len(openings) > 1:
            raise MalformedDocumentError(
                f"Opening marker '{marker}' appears {len(openings)} times "
                f"(lines {', '.join(str(i + 1) for i in openings)})"
            )

        start = openings[0]
        end = None
        for i in range(start + 1, len(lines)):
            stripped = lines[i].strip()
            if stripped == CLOSING_MARKER:
                end = i
                break
            if stripped.endswith('{') and not stripped.startswith('#'):
                raise MalformedDocumentError(
                    f"Nested block at line {i + 1} inside '{marker}' is not supported"
                )

        if end is None:
            raise MalformedDocumentError(
                f"Block '{marker}' at line {start + 1} has no closing '{CLOSING_MARKER}'"
            )

        body = [BlockLine.from_line(lines[i], i + 1) for i in range(start + 1, end)]

        document = cls(
            block_name=block_name,
            preamble=lines[:start],
            opening_line=lines[start],
            body=body,
            closing_line=lines[end],
            epilogue=lines[end + 1:]
        )
        logger.debug(f"Parsed block '{marker}' with {len(document.entries)} servers")
        return document

    @property
    def entries(self) -> List[ServerEntry]:
        """Server entries in file order."""
        return [line.server for line in self.body
                if line.line_type == LineType.SERVER and line.server]

    @property
    def newline(self) -> str:
        return "\r\n" if self.opening_line.endswith("\r\n") else "\n"

    def find(self, host: str, port: str) -> Optional[ServerEntry]:
        for entry in self.entries:
            if entry.matches(host, port):
                return entry
        return None

    def add_entry(self, entry: ServerEntry) -> None:
        """Insert entry directly after the opening marker."""
        self.body.insert(0, BlockLine.for_server(entry, self.newline))

    def remove_entry(self, host: str, port: str) -> List[ServerEntry]:
        """Drop every entry line for (host, port) and return what was removed."""
        removed = []
        kept = []
        for line in self.body:
            if line.line_type == LineType.SERVER and line.server and line.server.matches(host, port):
                removed.append(line.server)
            else:
                kept.append(line)
        self.body = kept
        return removed

    def clear(self) -> List[ServerEntry]:
        """Empty the block body and return the entries it held."""
        removed = self.entries
        self.body = []
        return removed

    def render(self) -> str:
        """Render the whole file back to text."""
        parts = list(self.preamble)
        parts.append(self.opening_line)
        parts.extend(line.content for line in self.body)
        parts.append(self.closing_line)
        parts.extend(self.epilogue)
        return ''.join(parts)


@dataclass
class BackupInfo:
    """Information about a backup file."""

    path: str
    timestamp: datetime
    size: int
    original_file: str

    @classmethod
    def from_file(cls, backup_path: str, original_file: str) -> 'BackupInfo':
        """Create backup info from file path."""
        from pathlib import Path

        stat = Path(backup_path).stat()

        return cls(
            path=backup_path,
            timestamp=datetime.fromtimestamp(stat.st_mtime),
            size=stat.st_size,
            original_file=original_file
        )


@dataclass
class OperationResult:
    """Result of an editor operation."""

    success: bool
    message: str
    backup_created: Optional[str] = None
    entries_modified: List[ServerEntry] = None
    warnings: List[str] = None

    def __post_init__(self):
        if self.entries_modified is None:
            self.entries_modified = []
        if self.warnings is None:
            self.warnings = []
