"""Export modules for check reports."""

from .excel_exporter import ExcelExporter
from .report_writer import build_report_document, write_report

__all__ = [
    'ExcelExporter',
    'build_report_document',
    'write_report'
]
