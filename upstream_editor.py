#!/usr/bin/env python3
"""
Upstream editor CLI.
Manages the server list of an nginx upstream block and reloads nginx.
"""

import argparse
import sys
import os
import logging
from pathlib import Path
from typing import List, Optional

from config import get_config
from editor import UpstreamEditor
from errors import UpstreamEditorError, InvalidArgumentsError, ExternalCommandError
from models import ServerEntry
from reload_service import ServiceReloader

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="upstream-editor",
        description="Assist in easily managing the nginx upstream config file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  create            Create a new upstream config file
  list              Display all servers in the upstream config file
  add HOST PORT     Add a server to the upstream config file
  del HOST PORT     Remove a server from the upstream config file
  clear             Remove all servers from the upstream config file
  reload            Reload the nginx config (requires root)
  help              Show this message

Examples:
  upstream-editor create
  upstream-editor list
  upstream-editor add 127.0.0.1 8080
  upstream-editor del 127.0.0.1 8080
  sudo upstream-editor reload
        """
    )

    parser.add_argument('-c', '--config', metavar='PATH',
                        help='Upstream config file to manage')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose output')
    parser.add_argument('command', nargs='?', help='Command verb')
    parser.add_argument('arguments', nargs='*', help='Command arguments')

    return parser


def check_root() -> bool:
    """Check if running as root."""
    if hasattr(os, 'geteuid') and os.geteuid() != 0:
        print("⚠️  Warning: Not running as root. Reloading nginx may fail.")
        print("   Run with: sudo upstream-editor reload")
        return False
    return True


def print_servers(entries: List[ServerEntry]):
    """Print the server list the way every command reports it."""
    if not entries:
        print("There are no servers in the upstream config file")
        return

    print("Servers in the upstream config file:")
    for entry in entries:
        print(f"  - {entry.address}")


def create_command(args, editor: UpstreamEditor) -> int:
    result = editor.create()
    print(f"✅ {result.message}")
    return 0


def list_command(args, editor: UpstreamEditor) -> int:
    print_servers(editor.list_servers())
    return 0


def add_command(args, editor: UpstreamEditor) -> int:
    """Add a server, then show the resulting list."""
    host, port = args.arguments
    result = editor.add_server(host, port)
    print(f"✅ {result.message}")
    if result.backup_created:
        print(f"   Backup created: {result.backup_created}")
    print()
    print_servers(editor.list_servers())
    return 0


def del_command(args, editor: UpstreamEditor) -> int:
    """Remove a server, then show the resulting list."""
    host, port = args.arguments
    result = editor.remove_server(host, port)
    print(f"✅ {result.message}")
    for warning in result.warnings:
        print(f"⚠️  {warning}")
    if result.backup_created:
        print(f"   Backup created: {result.backup_created}")
    print()
    print_servers(editor.list_servers())
    return 0


def clear_command(args, editor: UpstreamEditor) -> int:
    result = editor.clear()
    print(f"✅ {result.message}")
    return 0


def reload_command(args, editor: UpstreamEditor) -> int:
    """Reload nginx and pass through the command's exit status."""
    check_root()
    result = ServiceReloader.from_config(editor.config).reload()
    if result.output:
        print(result.output)
    print("✅ nginx reloaded")
    return result.returncode


# verb -> (handler, number of positional arguments)
COMMANDS = {
    'create': (create_command, 0),
    'list': (list_command, 0),
    'add': (add_command, 2),
    'del': (del_command, 2),
    'clear': (clear_command, 0),
    'reload': (reload_command, 0),
}


def report_error(error: UpstreamEditorError, parser: argparse.ArgumentParser):
    """Print an error, its hint and, where useful, the usage text."""
    print(f"❌ Error: {error.message}")
    if error.hint:
        print(f"   {error.hint}")
    if isinstance(error, ExternalCommandError) and error.output:
        print(error.output)
    if error.show_usage:
        print()
        parser.print_help()


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI function."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command or args.command == 'help':
        parser.print_help()
        return 1

    if args.command not in COMMANDS:
        print(f"❌ Error: Unknown command verb '{args.command}'")
        print()
        parser.print_help()
        return 1

    try:
        config = get_config()
        if args.config:
            config.config_path = Path(args.config).expanduser()
        config.setup_logging(args.verbose)

        handler, arity = COMMANDS[args.command]
        if len(args.arguments) != arity:
            raise InvalidArgumentsError(
                f"Invalid number of arguments for '{args.command}': "
                f"expected {arity}, got {len(args.arguments)}"
            )

        editor = UpstreamEditor(config)
        logger.debug(f"Running '{args.command}' on {config.config_path}")
        return handler(args, editor)

    except UpstreamEditorError as e:
        report_error(e, parser)
        return e.exit_code
    except KeyboardInterrupt:
        print("\n\n⚠️  Operation cancelled by user.")
        return 1
    except Exception as e:
        print(f"❌ Unexpected error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
