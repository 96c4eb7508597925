from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence, TextIO

from nfs_usage.collectors.mount_collector import MountCollector
from nfs_usage.collectors.usage_collector import ByteUsageQuerier, DfQuerier, UsageCollector
from nfs_usage.errors import HistoryError
from nfs_usage.services.config_service import ConfigPaths, ConfigService, RunConfig
from nfs_usage.services.history_service import HistoryService
from nfs_usage.services.report_service import ReportService

logger = logging.getLogger(__name__)

EXIT_OK, EXIT_ERR = 0, 1


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="nfsusage",
        description="Record NFS mount usage to a JSON history and optionally compare with the oldest sample.",
    )
    ap.add_argument(
        "-f",
        "-file",
        "--file",
        dest="file",
        metavar="PATH",
        help="JSON file for storing usage data (default: CWD/nfsusage.json)",
    )
    ap.add_argument(
        "-c",
        "-compare",
        "--compare",
        dest="compare",
        action="store_true",
        default=None,
        help="compare current usage with the oldest entry",
    )
    ap.add_argument(
        "--no-compare",
        dest="compare",
        action="store_false",
        default=None,
        help="print current usage only, even if the config file enables compare",
    )
    ap.add_argument("--mount-table", metavar="PATH", help="read mounts from this file instead of the live table")
    ap.add_argument("--df-command", metavar="CMD", help="disk usage command to run (default: df)")
    ap.add_argument("--config", metavar="PATH", help="config file (default: ~/.config/nfs_usage/config.json)")
    ap.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return ap


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )


def run_once(
    cfg: RunConfig,
    *,
    querier: ByteUsageQuerier | None = None,
    out: TextIO | None = None,
) -> int:
    """Sample every NFS mount once, append to history and print the report."""
    out = out or sys.stdout

    try:
        mounts = MountCollector(cfg.mount_table).collect()
    except OSError as e:
        logger.error("Error getting NFS mounts: %s", e)
        return EXIT_ERR

    if not mounts:
        logger.info("No NFS mounts found")
        return EXIT_OK

    collector = UsageCollector(querier or DfQuerier(cfg.df_command))
    result = collector.collect(mounts)
    current = result.data
    if not result.ok:
        logger.debug("skipped %d mount(s): %s", result.warning_count, ", ".join(result.skipped))

    history = HistoryService(cfg.history_file)
    try:
        samples = history.load()
    except (OSError, HistoryError) as e:
        logger.error("Error loading existing data: %s", e)
        return EXIT_ERR

    samples.append(current)
    try:
        history.save(samples)
    except OSError as e:
        logger.error("Error saving data: %s", e)
        return EXIT_ERR

    out.write(ReportService().render(samples, current, cfg.compare))
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    paths = ConfigPaths(path=Path(args.config)) if args.config else None
    try:
        cfg = ConfigService(paths).resolve(
            history_file=args.file,
            compare=args.compare,
            mount_table=args.mount_table,
            df_command=args.df_command,
        )
    except OSError as e:
        logger.error("Error getting current directory: %s", e)
        return EXIT_ERR

    logger.debug("config: %s", cfg)
    return run_once(cfg)


def run() -> None:
    raise SystemExit(main())
