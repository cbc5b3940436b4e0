#!/usr/bin/env python3
"""
Main entry point for the Škola OnLine widget command line.
"""
import asyncio
import logging
import time
from typing import List, Optional

from skolaonline_widget import clear_errors, get_error_summary, logger
from skolaonline_widget.app.application import Application
from skolaonline_widget.app.cli import parse_args, render_snapshot
from skolaonline_widget.app.orchestrator import RefreshOutcome
from skolaonline_widget.interface.config_manager import load_config
from skolaonline_widget.navigation import NavigationResult
from skolaonline_widget.utils.error_utils import configure_error_handling

def configure_logging(log_level: str, log_file: Optional[str] = None) -> None:
    """Apply the CLI log level and optional log file to the package logger."""
    level = getattr(logging, log_level)
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter('[%(asctime)s] %(levelname)s - %(message)s',
                                                    datefmt='%Y-%m-%d %H:%M:%S'))
        logger.addHandler(file_handler)

    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)

async def run_command(app: Application, command: str, token: Optional[str] = None) -> int:
    """
    Execute one CLI command against the application.

    Returns:
        int: Process exit code
    """
    orchestrator = app.orchestrator

    if command == "set-token":
        await app.set_refresh_token(token or "")
        print("Token uložen")
        return 0

    if command == "clear":
        await app.sign_out()
        print("Stav smazán")
        return 0

    exit_code = 0
    if command == "refresh":
        outcome = await orchestrator.request_refresh()
        if outcome is RefreshOutcome.COALESCED:
            logger.warning("Another process is already refreshing the timetable")
        await orchestrator.wait_idle()
        if outcome is RefreshOutcome.FAILED or app.navigation.refresh_state().error:
            exit_code = 1
    elif command in ("prev", "next"):
        result = await orchestrator.navigate(-1 if command == "prev" else 1)
        await orchestrator.wait_idle()
        if result is NavigationResult.IGNORED and app.navigation.refresh_in_flight():
            logger.warning("A refresh is in progress, try again later")
            exit_code = 1
        elif result is NavigationResult.IGNORED:
            logger.warning("Nothing to navigate, run 'refresh' first")
            exit_code = 1
        elif result is NavigationResult.REFRESH_REQUIRED and app.navigation.refresh_state().error:
            exit_code = 1

    print(render_snapshot(app.navigation.snapshot()))
    return exit_code

async def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the Škola OnLine widget command line.
    """
    start_time = time.time()
    clear_errors()

    args = parse_args(argv)
    configure_logging(args.log_level, args.log_file)
    configure_error_handling(collect_details=args.collect_error_details)

    config = load_config(args)

    async with Application(config) as app:
        exit_code = await run_command(app, args.command, getattr(args, "token", None))

    summary = get_error_summary()
    if summary["total"]:
        logger.info(f"Errors during run: {summary['by_type']}")
    logger.debug(f"Execution completed in {time.time() - start_time:.2f} seconds")
    return exit_code

def run() -> None:
    """Console script entry point."""
    raise SystemExit(asyncio.run(main()))

if __name__ == "__main__":
    run()
