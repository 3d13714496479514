"""
Excel exporter for IPAM check findings.
Uses xlsxwriter for efficient large file generation.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from ..processors.reconciliation import IpamReconciliation, ProblemCategory, ReconciliationReport

SHEET_NAMES = {
    ProblemCategory.LEAKED: 'Leaked',
    ProblemCategory.MULTI_OWNER: 'Multiple_Owners',
    ProblemCategory.NOT_IN_POOL: 'Not_In_Pool',
    ProblemCategory.MISSING_ALLOCATION: 'Missing_Allocation',
}

DETAIL_COLUMNS = {
    ProblemCategory.LEAKED: 'attributes',
    ProblemCategory.MULTI_OWNER: 'owner',
    ProblemCategory.NOT_IN_POOL: 'owner',
    ProblemCategory.MISSING_ALLOCATION: 'owner',
}


class ExcelExporter:
    """
    Exports a reconciliation report to an Excel workbook with one sheet per
    finding category.
    """

    def __init__(
        self,
        output_path: Path,
        file_prefix: str = "ipam_check",
        header_color: str = "#1F4E79"
    ):
        self.output_path = Path(output_path)
        self.file_prefix = file_prefix
        self.header_bg_color = header_color
        self.logger = logging.getLogger(f"ipamcheck.{self.__class__.__name__}")

    def _get_filename(self, name: str) -> Path:
        """Generate filename with date."""
        date_str = datetime.now().strftime("%d-%m-%Y")
        return self.output_path / f"{self.file_prefix}_{name}_{date_str}.xlsx"

    def _write_sheet(self, writer, df: pd.DataFrame, sheet_name: str, header_format):
        df.to_excel(writer, sheet_name=sheet_name, index=False)

        worksheet = writer.sheets[sheet_name]
        for col_num, value in enumerate(df.columns.values):
            worksheet.write(0, col_num, value, header_format)
            if len(df):
                max_len = max(df[value].astype(str).map(len).max(), len(value)) + 2
            else:
                max_len = len(value) + 2
            worksheet.set_column(col_num, col_num, min(max_len, 60))

        if len(df):
            worksheet.autofilter(0, 0, len(df), len(df.columns) - 1)
        worksheet.freeze_panes(1, 0)

    def _category_frame(
        self,
        report: ReconciliationReport,
        category: ProblemCategory
    ) -> pd.DataFrame:
        detail_column = DETAIL_COLUMNS[category]
        rows = [
            {'ip': ip, detail_column: detail}
            for ip, details in report.get_category(category).items()
            for detail in details
        ]
        return pd.DataFrame(rows, columns=['ip', detail_column])

    def _problems_frame(self, report: ReconciliationReport) -> pd.DataFrame:
        rows = [
            {'category': category.value, 'ip': ip, 'details': '; '.join(details)}
            for category, ip, details in IpamReconciliation.get_problems(report)
        ]
        return pd.DataFrame(rows, columns=['category', 'ip', 'details'])

    def _allocations_frame(self, report: ReconciliationReport) -> pd.DataFrame:
        rows: List[Dict[str, Any]] = []
        for host, statuses in report.allocations_by_host.items():
            for status in statuses:
                rows.append({
                    'host': host,
                    'ip': status.ip,
                    'block': status.block,
                    'handle': status.handle or '',
                    'secondary': ','.join(
                        f"{k}={v}" for k, v in sorted(status.secondary.items())
                    ),
                    'in_use': 'Yes' if status.in_use else 'No'
                })
        return pd.DataFrame(
            rows,
            columns=['host', 'ip', 'block', 'handle', 'secondary', 'in_use']
        )

    def export_report(
        self,
        report: ReconciliationReport,
        name: Optional[str] = None
    ) -> Path:
        """Export all findings of a report to one workbook."""
        filename = self._get_filename(name or "findings")
        self.logger.info(f"Exporting {report.num_problems} problems to {filename}")

        summary_df = pd.DataFrame(
            [
                ['IPAM blocks', report.num_blocks],
                ['Allocated IPs', report.num_allocations],
                ['Active IP pools', len(report.active_pools)],
                ['Node tunnel IPs', report.num_node_ips],
                ['Workload IPs', report.num_workload_ips],
                ['In-use IPs', report.num_in_use_ips],
                ['Leaked IPs', len(report.leaked)],
                ['IPs with multiple owners', len(report.multi_owner)],
                ['In-use IPs not in an active pool', len(report.not_in_pool)],
                ['In-use IPs with no allocation', len(report.missing_allocation)],
                ['Total problems', report.num_problems],
            ],
            columns=['Metric', 'Value']
        )

        with pd.ExcelWriter(filename, engine='xlsxwriter') as writer:
            workbook = writer.book
            header_format = workbook.add_format({
                'bold': True,
                'bg_color': self.header_bg_color,
                'font_color': 'white',
                'border': 1
            })

            self._write_sheet(writer, summary_df, 'Summary', header_format)
            self._write_sheet(
                writer,
                self._problems_frame(report),
                'Problems',
                header_format
            )

            for category in ProblemCategory:
                self._write_sheet(
                    writer,
                    self._category_frame(report, category),
                    SHEET_NAMES[category],
                    header_format
                )

            self._write_sheet(
                writer,
                self._allocations_frame(report),
                'Allocations',
                header_format
            )

        self.logger.info(f"Findings exported to {filename}")
        return filename
