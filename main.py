#!/usr/bin/env python3
"""
Main entry point for the Tool Installer
"""

import asyncio
import argparse
import sys
from pathlib import Path
import json
import logging
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from toolinstaller.core.catalog import ToolCatalog
from toolinstaller.core.orchestrator import BatchOrchestrator
from toolinstaller.core.script_executor import ScriptExecutor, DryRunExecutor
from toolinstaller.errors import InstallerError
from toolinstaller.integrations.job_store import InMemoryJobStore, JobRecordStore
from toolinstaller.integrations.sqlite_store import SqliteJobStore
from toolinstaller.models.installation import JobStatus
from toolinstaller.models.progress import ProgressEvent, ProgressStatus
from toolinstaller.utils.logging import setup_root_logger, get_logger
from config.settings import Settings


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Unattended installation of developer tools from shell scripts"
    )

    parser.add_argument(
        "tools",
        nargs="*",
        help="Names of the tools to install, in order"
    )

    parser.add_argument(
        "--tool-set",
        type=str,
        help="Install every uninstalled tool of this tool set"
    )

    parser.add_argument(
        "--list",
        action="store_true",
        help="List the tool catalog and exit"
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to configuration file (JSON format)"
    )

    parser.add_argument(
        "--db",
        type=Path,
        help="Path to the SQLite database"
    )

    parser.add_argument(
        "--scripts-dir",
        type=Path,
        help="Directory containing the install scripts"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log the scripts that would run without running them"
    )

    parser.add_argument(
        "--serve",
        action="store_true",
        help="Run the HTTP API instead of installing from the command line"
    )

    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host for --serve (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port",
        type=int,
        default=3001,
        help="Port for --serve (default: 3001)"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: from settings, INFO)"
    )

    return parser.parse_args(argv)


def load_config(args) -> Settings:
    """Load configuration from file, then apply command line overrides."""
    config_data = {}
    if args.config and args.config.exists():
        with open(args.config) as f:
            config_data = json.load(f)

    if args.db:
        config_data.setdefault("database", {})["path"] = str(args.db)
    if args.scripts_dir:
        config_data.setdefault("executor", {})["scripts_dir"] = str(args.scripts_dir)
    if args.dry_run:
        config_data["dry_run"] = True
    if args.log_level:
        config_data.setdefault("logging", {})["level"] = args.log_level

    return Settings(**config_data)


def build_store(settings: Settings) -> JobRecordStore:
    """Create the job record store and seed the catalog."""
    if settings.dry_run:
        store = InMemoryJobStore()
    else:
        store = SqliteJobStore(settings.database.path)

    if settings.catalog.seed_defaults or settings.dry_run:
        ToolCatalog(store).seed_defaults()
    return store


def build_orchestrator(settings: Settings, store: JobRecordStore) -> BatchOrchestrator:
    """Create the orchestrator with the configured executor."""
    executor_config = settings.executor.model_dump()
    executor_cls = DryRunExecutor if settings.dry_run else ScriptExecutor
    return BatchOrchestrator(
        store=store,
        executor=executor_cls(executor_config),
        scripts_dir=settings.executor.scripts_dir
    )


def log_progress(event: ProgressEvent) -> None:
    """Report a progress event through logging."""
    logger = get_logger("toolinstaller.progress")
    if event.log_line is not None:
        logger.debug(f"[{event.tool_name}] {event.log_line}")
    elif event.status == ProgressStatus.FAILED:
        logger.error(f"[{event.percent:5.1f}%] {event.message}")
    else:
        logger.info(f"[{event.percent:5.1f}%] {event.message}")


def print_catalog(store: JobRecordStore) -> None:
    for tool in store.list_tools():
        marker = "x" if tool.installed else " "
        print(f"[{marker}] {tool.name:<16} {tool.display_name:<28} {tool.category or ''}")
    for tool_set in store.list_tool_sets():
        print(f"set {tool_set.name:<12} {', '.join(tool_set.tools)}")


async def install(args, settings: Settings, store: JobRecordStore) -> int:
    """Install the requested tools and return the process exit code."""
    logger = logging.getLogger(__name__)
    catalog = ToolCatalog(store)

    if args.tool_set:
        tool_set, requests = catalog.requests_for_tool_set(args.tool_set)
        logger.info(f"Installing tool set {tool_set.display_name}")
    else:
        requests = catalog.requests_for_tool_names(args.tools)

    orchestrator = build_orchestrator(settings, store)
    jobs = await orchestrator.run_batch(requests, on_progress=log_progress)

    completed = [job for job in jobs if job.status == JobStatus.COMPLETED]
    failed = [job for job in jobs if job.status == JobStatus.FAILED]
    cancelled = [job for job in jobs if job.status == JobStatus.CANCELLED]

    # Print summary
    logger.info("=" * 60)
    logger.info("SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total tools: {len(jobs)}")
    logger.info(f"Completed: {len(completed)}")
    logger.info(f"Failed: {len(failed)}")
    logger.info(f"Cancelled: {len(cancelled)}")
    for job in failed:
        name = job.tool.name if job.tool else job.tool_id
        logger.info(f"  {name}: {job.error_message}")
    logger.info("=" * 60)

    return 1 if failed else 0


def serve(args, settings: Settings, store: JobRecordStore) -> None:
    """Run the HTTP API."""
    import uvicorn
    from toolinstaller.api.app import create_app

    app = create_app(
        orchestrator=build_orchestrator(settings, store),
        catalog=ToolCatalog(store),
        title=settings.api.title,
        activity_limit=settings.api.activity_limit
    )
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)

    try:
        settings = load_config(args)
    except Exception as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    setup_root_logger(
        settings.logging.file_path,
        settings.logging.level,
        format_string=settings.logging.format,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count
    )
    logger = logging.getLogger(__name__)
    logger.info("Starting Tool Installer")
    logger.debug(f"Arguments: {vars(args)}")

    store = build_store(settings)
    try:
        if args.list:
            print_catalog(store)
            return 0
        if args.serve:
            serve(args, settings, store)
            return 0
        if not args.tools and not args.tool_set:
            logger.error("Nothing to install: name some tools or pass --tool-set")
            return 1
        return asyncio.run(install(args, settings, store))
    except InstallerError as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
