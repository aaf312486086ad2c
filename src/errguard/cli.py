"""
Command-line interface for errguard.

Provides CLI commands for checking configuration and inspecting error logs:
- check-config: Validate the handler parameters a process would start with
- show: Print the most recent error log entries
- summary: Print totals across an error log

Usage:
    errguard [--config INI] check-config [--params FILE]
    errguard show [--log FILE] [--last N] [--json]
    errguard summary [--log FILE]

Environment Variables:
    ERRGUARD_MODE: Handler mode (development, production, silent)
    ERRGUARD_LOG_DIR: Directory holding the error log
    ERRGUARD_LOG_FILE: Error log file name (default: errors.jsonl)
    ERRGUARD_LOG_LEVEL: Level for errguard's own logging (default: INFO)
    ERRGUARD_LOG_FORMAT: simple, detailed or json
"""

import argparse
import json
import sys
from pathlib import Path


def _load_cli_settings(args: argparse.Namespace):
    """Load settings, honouring an explicit ``--config`` INI path."""
    from errguard.settings import load_settings

    config_path = getattr(args, "config", None)
    return load_settings(Path(config_path) if config_path else None)


def _resolve_log_path(args: argparse.Namespace) -> Path:
    """
    Resolve which error log file a read command should use.

    Resolution order:
        1. --log argument
        2. Settings (ERRGUARD_LOG_DIR / ERRGUARD_LOG_FILE, INI file)
        3. errors.jsonl in the current directory
    """
    explicit = getattr(args, "log", None)
    if explicit:
        return Path(explicit)
    settings = _load_cli_settings(args)
    directory = Path(settings.handler.log_directory or Path.cwd())
    return directory / settings.handler.log_file


def cmd_check_config(args: argparse.Namespace) -> int:
    """
    Validate handler parameters without installing any hooks.

    Parameters come from settings (INI + environment) merged with an optional
    YAML parameter file; the file wins on conflicting keys.

    Returns:
        0 if the parameters are valid, 1 otherwise
    """
    from errguard.config import build_config
    from errguard.errors import ConfigurationError
    from errguard.settings import load_parameters, merge_parameters

    settings = _load_cli_settings(args)
    sources = [settings.to_parameters()]

    params_path = getattr(args, "params", None)
    if params_path:
        try:
            sources.append(load_parameters(Path(params_path)))
        except (OSError, ValueError) as e:
            print(f"Error reading parameter file: {e}", file=sys.stderr)
            return 1

    try:
        cfg = build_config(merge_parameters(*sources))
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    print("Configuration OK")
    print(f"Mode:        {cfg.mode.value}")
    print(f"Log file:    {cfg.log_path}")
    print(f"Major:       {', '.join(sorted(s.name for s in cfg.major_mask)) or '-'}")
    print(f"Minor:       {', '.join(sorted(s.name for s in cfg.minor_mask)) or '-'}")
    overrides = ", ".join(mode.value for mode in cfg.fatal_actions) or "none"
    print(f"Overrides:   {overrides}")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    """
    Print the last N entries of an error log.

    Returns:
        0 on success, 1 if the log cannot be read
    """
    from errguard.errors import LogReadError
    from errguard.reader import tail_entries

    path = _resolve_log_path(args)
    try:
        entries = tail_entries(path, getattr(args, "last", 10))
    except LogReadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not entries:
        print(f"No entries in {path}")
        return 0

    for entry in entries:
        if getattr(args, "json", False):
            print(entry.model_dump_json())
            continue
        counts = entry.errors.counts
        status = f"FATAL ({entry.fatal_type})" if entry.is_fatal else "logged"
        print(
            f"{entry.timestamp}  {status}  "
            f"minor={counts.minor} major={counts.major} fatal={counts.fatal}"
        )
        for record in entry.errors.errors:
            label = record.name if record.type == "exception" else f"code {record.code}"
            location = f"{record.file}:{record.line}" if record.file else "<unknown>"
            print(f"    [{label}] {record.message} ({location})")
    return 0


def cmd_summary(args: argparse.Namespace) -> int:
    """
    Print totals across an error log.

    Returns:
        0 on success, 1 if the log cannot be read
    """
    from errguard.errors import LogReadError
    from errguard.reader import iter_entries, summarize

    path = _resolve_log_path(args)
    try:
        summary = summarize(iter_entries(path))
    except LogReadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Log:            {path}")
    print(f"Entries:        {summary.entries}")
    print(f"Fatal entries:  {summary.fatal_entries}")
    print(
        f"Errors:         minor={summary.counts.minor} "
        f"major={summary.counts.major} fatal={summary.counts.fatal}"
    )
    if summary.fatal_types:
        print(f"Fatal types:    {json.dumps(summary.fatal_types, sort_keys=True)}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="errguard",
        description="errguard - classify, buffer and log runtime errors",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="INI settings file (default: config/errguard.ini)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # check-config command
    check_parser = subparsers.add_parser(
        "check-config",
        help="Validate handler parameters",
        description=(
            "Build the handler configuration from settings and an optional "
            "YAML parameter file, reporting every problem found."
        ),
    )
    check_parser.add_argument("--params", type=str, help="YAML handler parameter file")
    check_parser.set_defaults(func=cmd_check_config)

    # show command
    show_parser = subparsers.add_parser(
        "show",
        help="Show recent error log entries",
        description="Print the last entries of the error log.",
    )
    show_parser.add_argument("--log", type=str, help="Error log file to read")
    show_parser.add_argument(
        "--last", "-n", type=int, default=10, help="Number of entries to show (default: 10)"
    )
    show_parser.add_argument("--json", action="store_true", help="Print entries as JSON")
    show_parser.set_defaults(func=cmd_show)

    # summary command
    summary_parser = subparsers.add_parser(
        "summary",
        help="Summarise an error log",
        description="Print error totals across every entry in the log.",
    )
    summary_parser.add_argument("--log", type=str, help="Error log file to read")
    summary_parser.set_defaults(func=cmd_summary)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    from errguard.settings import configure_logging

    configure_logging(_load_cli_settings(args).logging)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
