#!/usr/bin/env python3
"""
IPAM Check - Main Entry Point

Checks the integrity of Calico's IPAM data against the addresses actually
used by nodes and workloads in a Kubernetes cluster. Nothing is modified.

Usage:
    ipamcheck [--config CONFIG_PATH] [--show-all-ips] [--show-problem-ips]
              [--snapshot FILE] [--report FILE] [--excel] [--fail-on-problems]

Environment Variables:
    Any ${VAR} reference in the configuration file, e.g. KUBE_TOKEN
"""

import argparse
import asyncio
import sys
from datetime import datetime
from typing import Any, Dict, Optional

from . import __version__
from .connectors import IpamDataSource, SnapshotDataSource, create_kubernetes_connector
from .exporters import ExcelExporter, write_report
from .processors import IpamReconciliation, ReconciliationReport
from .utils import create_output_directories, load_config, setup_logger

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_PROBLEMS = 2


class IpamCheckTool:
    """
    Main orchestrator for the IPAM check.
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None
    ):
        self.config_path = config_path
        self.overrides = overrides or {}
        self.config = None
        self.logger = None

        self.report: Optional[ReconciliationReport] = None
        self.execution_stats = {
            'start_time': None,
            'end_time': None,
            'check_time': None,
            'export_time': None,
            'errors': []
        }

    def initialize(self) -> bool:
        """Initialize configuration and logging."""
        try:
            self.config = load_config(self.config_path)
            self._apply_overrides()

            self.logger = setup_logger(
                level=self.config.logging.level,
                log_file=self.config.logging.file,
                max_size_mb=self.config.logging.max_size_mb,
                backup_count=self.config.logging.backup_count,
                log_format=self.config.logging.format,
                console_format=self.config.logging.console_format
            )

            self.logger.debug(f"ipamcheck {__version__}")
            if self.config_path:
                self.logger.debug(f"Configuration loaded from: {self.config_path}")

            return True

        except FileNotFoundError as e:
            print(f"ERROR: Configuration file not found: {e}")
            return False
        except ValueError as e:
            print(f"ERROR: Configuration validation failed: {e}")
            return False
        except Exception as e:
            print(f"ERROR: Initialization failed: {e}")
            return False

    def _apply_overrides(self):
        """Command line flags take precedence over the configuration file."""
        check = self.config.check
        output = self.config.output

        if self.overrides.get('show_all_ips'):
            check.show_all_ips = True
        if self.overrides.get('show_problem_ips'):
            check.show_problem_ips = True
        if self.overrides.get('snapshot'):
            check.snapshot = self.overrides['snapshot']
        if self.overrides.get('report_file'):
            output.report_file = self.overrides['report_file']
        if self.overrides.get('excel_export'):
            output.excel_export = True

    def _create_source(self) -> IpamDataSource:
        if self.config.check.snapshot:
            self.logger.debug(f"Reading cluster state from snapshot {self.config.check.snapshot}")
            return SnapshotDataSource(self.config.check.snapshot)
        return create_kubernetes_connector(self.config)

    async def run_check(self) -> bool:
        """Run the IPAM check against the configured data source."""
        start_time = datetime.now()

        try:
            source = self._create_source()
            reconciler = IpamReconciliation(
                source,
                show_all_ips=self.config.check.show_all_ips,
                show_problem_ips=self.config.check.show_problem_ips,
                reserved_handle=self.config.check.reserved_handle
            )

            if isinstance(source, SnapshotDataSource):
                self.report = await reconciler.check()
            else:
                async with source:
                    if not await source.test_connection():
                        self.logger.error("Failed to connect to the Kubernetes API server")
                        self.execution_stats['errors'].append("Kubernetes connection failed")
                        return False

                    self.logger.debug("Connected to the Kubernetes API server")
                    self.report = await reconciler.check()
                self.logger.debug(f"Datastore request stats: {source.get_stats()}")

            self.execution_stats['check_time'] = (
                datetime.now() - start_time
            ).total_seconds()
            return True

        except Exception as e:
            self.logger.error(f"IPAM check failed: {e}")
            self.logger.debug("Failure details", exc_info=True)
            self.execution_stats['errors'].append(str(e))
            return False

    def generate_exports(self) -> bool:
        """Write the JSON report and Excel workbook if requested."""
        output = self.config.output
        if not output.report_file and not output.excel_export:
            return True

        start_time = datetime.now()

        try:
            if output.report_file:
                write_report(self.report, output.report_file)

            if output.excel_export:
                export_path = create_output_directories(self.config)
                exporter = ExcelExporter(
                    output_path=export_path,
                    file_prefix=output.file_prefix
                )
                exporter.export_report(self.report)

            self.execution_stats['export_time'] = (
                datetime.now() - start_time
            ).total_seconds()
            return True

        except OSError as e:
            self.logger.error(f"Error writing exports: {e}")
            self.execution_stats['errors'].append(f"Export error: {e}")
            return False

    async def run(self) -> bool:
        """Run the complete check workflow."""
        self.execution_stats['start_time'] = datetime.now()

        if not self.initialize():
            return False

        if not await self.run_check():
            return False

        exported = self.generate_exports()

        self.execution_stats['end_time'] = datetime.now()
        self._log_summary()

        return exported

    def _log_summary(self):
        """Log execution summary."""
        duration = (
            self.execution_stats['end_time'] -
            self.execution_stats['start_time']
        ).total_seconds()

        self.logger.debug(f"Total duration: {duration:.2f} seconds")
        self.logger.debug(f"Check: {self.execution_stats.get('check_time') or 0:.2f}s")
        self.logger.debug(f"Export generation: {self.execution_stats.get('export_time') or 0:.2f}s")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ipamcheck",
        description="Check the integrity of Calico IPAM data against Kubernetes"
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to configuration file (default: in-cluster settings)"
    )
    parser.add_argument(
        "--show-all-ips",
        action="store_true",
        help="Print every allocated and in-use IP (implies --show-problem-ips)"
    )
    parser.add_argument(
        "--show-problem-ips",
        action="store_true",
        help="Print each IP that has a problem"
    )
    parser.add_argument(
        "--snapshot",
        default=None,
        help="Read cluster state from a YAML/JSON snapshot instead of the API server"
    )
    parser.add_argument(
        "--report", "-o",
        dest="report_file",
        default=None,
        help="Write a JSON report to this file"
    )
    parser.add_argument(
        "--excel",
        dest="excel_export",
        action="store_true",
        help="Export findings to an Excel workbook"
    )
    parser.add_argument(
        "--fail-on-problems",
        action="store_true",
        help=f"Exit with status {EXIT_PROBLEMS} when problems are found"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    return parser


def main(argv=None):
    """Main entry point."""
    args = build_parser().parse_args(argv)

    tool = IpamCheckTool(
        config_path=args.config,
        overrides={
            'show_all_ips': args.show_all_ips,
            'show_problem_ips': args.show_problem_ips,
            'snapshot': args.snapshot,
            'report_file': args.report_file,
            'excel_export': args.excel_export
        }
    )

    success = asyncio.run(tool.run())

    if not success:
        sys.exit(EXIT_ERROR)
    if args.fail_on_problems and tool.report.num_problems:
        sys.exit(EXIT_PROBLEMS)
    sys.exit(EXIT_OK)


if __name__ == "__main__":
    main()
