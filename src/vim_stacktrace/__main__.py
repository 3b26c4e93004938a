"""Entry point for running vim-stacktrace.

This module provides the main entry point for vim-stacktrace.
It handles:
- Configuration loading
- Logging setup
- Channel and service instantiation
- Server lifecycle management
- Offline extraction of errors from a saved message history

Vim starts the server as a job speaking JSON on stdin/stdout:

    let job = job_start(['vim-stacktrace'], {'mode': 'json'})
    echo ch_evalexpr(job, {'id': 'stacktrace#build', 'throwpoint': v:throwpoint})
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

import structlog

from vim_stacktrace._version import __version__

log = structlog.get_logger()


def setup_logging(
    debug: bool = False,
    log_format: str = "json",
    file_path: Path | None = None,
    file_enabled: bool = False,
) -> None:
    """Configure structured logging.

    Args:
        debug: Enable debug logging if True
        log_format: Output format ("json" or "console")
        file_path: Path to log file (if file logging enabled)
        file_enabled: Whether to enable file logging
    """
    from vim_stacktrace.utils.logging import LogFormat, LogLevel, configure_logging

    level = LogLevel.DEBUG if debug else LogLevel.INFO

    configure_logging(
        level=level,
        log_format=LogFormat(log_format.lower()),
        file_path=file_path,
        file_enabled=file_enabled,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        argv: Arguments to parse (defaults to sys.argv)

    Returns:
        Parsed argument namespace
    """
    parser = argparse.ArgumentParser(
        prog="vim-stacktrace",
        description="Stacktraces for Vim script errors, served over a Vim JSON channel",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: built-in defaults)",
    )

    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "--format",
        choices=["json", "console"],
        default="json",
        help="Log output format (default: json)",
    )

    parser.add_argument(
        "--histerrs",
        metavar="FILE",
        default=None,
        help="Print the errors found in a saved :messages log ('-' for stdin) and exit",
    )

    return parser.parse_args(argv)


def run_histerrs(source: str) -> int:
    """Extract errors from a saved message history and print them as JSON.

    Args:
        source: Path of the saved history, or "-" for stdin

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    from vim_stacktrace.core.history import HistoryErrorExtractor

    try:
        if source == "-":
            msghist = sys.stdin.read()
        else:
            msghist = Path(source).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        log.error("history_file_unreadable", path=source, error=str(e))
        return 1

    errors = HistoryErrorExtractor().extract(msghist)
    json.dump([error.to_dict() for error in errors], sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")
    return 0


async def run_server(config_path: Path | None, debug: bool = False) -> int:
    """Run the stacktrace server on stdin/stdout.

    Args:
        config_path: Path to configuration file, None for defaults
        debug: Keep debug logging when configured logging takes over

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    log.info(
        "starting_vim_stacktrace",
        version=__version__,
        config_path=str(config_path) if config_path else None,
    )

    try:
        from vim_stacktrace.config.loader import load_config

        config = load_config(config_path)
        log.info("configuration_loaded")

        # Logging settings from a file or VIM_STACKTRACE_LOGGING__* replace the CLI defaults
        if config_path is not None or config.logging.model_fields_set:
            from vim_stacktrace.utils.logging import configure_logging

            configure_logging(
                level="DEBUG" if debug else config.logging.level,
                log_format=config.logging.format,
                file_path=config.logging.file.path if config.logging.file.enabled else None,
                file_enabled=config.logging.file.enabled,
            )

        from vim_stacktrace.adapters.vim.channel import open_stdio_channel
        from vim_stacktrace.adapters.vim.runtime import ChannelRuntime
        from vim_stacktrace.core.request_handler import RequestHandler
        from vim_stacktrace.core.server import StacktraceServer
        from vim_stacktrace.core.service import create_service

        channel = await open_stdio_channel(call_timeout=config.channel.call_timeout)
        runtime = ChannelRuntime(channel, asyncio.get_running_loop())
        service = create_service(config, runtime, runtime)
        server = StacktraceServer(config, channel, RequestHandler(service))

        await server.start()
        return 0

    except FileNotFoundError as e:
        log.error("configuration_file_not_found", path=str(config_path), error=str(e))
        return 1
    except ValueError as e:
        log.error("configuration_invalid", error=str(e))
        return 1
    except Exception as e:
        log.exception("fatal_error", error=str(e))
        return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    # Setup logging with CLI options
    setup_logging(
        debug=args.debug,
        log_format=args.format,
    )

    if args.histerrs is not None:
        return run_histerrs(args.histerrs)

    try:
        return asyncio.run(run_server(args.config, debug=args.debug))
    except KeyboardInterrupt:
        log.info("shutting_down_gracefully")
        return 0


if __name__ == "__main__":
    sys.exit(main())
