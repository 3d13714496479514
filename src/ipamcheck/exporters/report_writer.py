"""
JSON report of a completed IPAM check.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from .. import __version__
from ..processors.reconciliation import ReconciliationReport

logger = logging.getLogger("ipamcheck.report_writer")


def build_report_document(report: ReconciliationReport) -> Dict[str, Any]:
    """Report contents plus the metadata a release tool needs to trust it."""
    document = {
        'version': __version__,
        'generated_at': datetime.now(timezone.utc).isoformat(),
    }
    document.update(report.to_dict())
    return document


def write_report(report: ReconciliationReport, path: str) -> Path:
    """Write the report as JSON, creating parent directories as needed."""
    report_path = Path(path)
    report_path.parent.mkdir(parents=True, exist_ok=True)

    with open(report_path, 'w', encoding='utf-8') as f:
        json.dump(build_report_document(report), f, indent=2)

    logger.info(f"Report written to {report_path}")
    return report_path
