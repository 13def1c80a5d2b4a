"""
Evaluation Report Module.

Per-case results, the aggregate report, and exporters for text, JSON
and Excel output.

Report shape (to_dict):
    {"overallSuccess": bool, "passed": int, "total": int,
     "results": [{"filename", "testDate", "success", "expectedValidFrom",
                  "expectedExpiry", "actualValidFrom"?, "actualExpiry"?,
                  "error"?}]}
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from voucher_ocr.utils.logger import get_logger
from voucher_ocr.utils.helpers import ensure_directory, format_date
from voucher_ocr.utils.exceptions import ReportExportError
from voucher_ocr.postprocessor.models import ResolvedValidity
from .corpus import EvalCase

# Initialize module logger
logger = get_logger(__name__)

_HEADER_FONT = Font(bold=True, color="FFFFFF")
_HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
_FAIL_FILL = PatternFill(start_color="F8CBAD", end_color="F8CBAD", fill_type="solid")
_THIN = Side(style="thin")
_CELL_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)


@dataclass(frozen=True)
class EvalResult:
    """
    Outcome of one evaluation case.

    Attributes:
        filename: Sample image filename
        case: The case evaluated (None for filenames not in the corpus)
        success: actual validity equals expected validity
        actual_validity: Window the pipeline produced, if any
        error: Diagnostic when the case failed
    """
    filename: str
    case: Optional[EvalCase]
    success: bool
    actual_validity: Optional[ResolvedValidity] = None
    error: Optional[str] = None

    @property
    def test_date(self) -> str:
        return self.case.label if self.case else "unknown"

    def to_dict(self) -> Dict[str, Any]:
        expected = self.case.expected_validity if self.case else None
        result = {
            'filename': self.filename,
            'testDate': self.test_date,
            'success': self.success,
            'expectedValidFrom': format_date(expected.valid_from) if expected else "",
            'expectedExpiry': format_date(expected.expiry) if expected else "",
        }
        if self.actual_validity is not None:
            result['actualValidFrom'] = format_date(self.actual_validity.valid_from)
            result['actualExpiry'] = format_date(self.actual_validity.expiry)
        if self.error is not None:
            result['error'] = self.error
        return result


@dataclass
class EvalReport:
    """
    Aggregate of all evaluation results.

    Attributes:
        results: Per-case results in corpus order
        provider: Backend the run used
        timestamp: When the run finished
    """
    results: List[EvalResult] = field(default_factory=list)
    provider: Optional[str] = None
    timestamp: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.total - self.passed

    @property
    def overall_success(self) -> bool:
        return self.passed == self.total

    def to_dict(self) -> Dict[str, Any]:
        return {
            'overallSuccess': self.overall_success,
            'passed': self.passed,
            'total': self.total,
            'results': [r.to_dict() for r in self.results],
        }

    def print_report(self) -> str:
        """Generate a formatted report string."""
        lines = [
            "=" * 60,
            "VOUCHER OCR EVALUATION REPORT",
            "=" * 60,
            f"Timestamp: {self.timestamp}",
            f"Provider:  {self.provider or 'unknown'}",
            f"Passed:    {self.passed}/{self.total}",
            f"Result:    {'PASS' if self.overall_success else 'FAIL'}",
            "-" * 60,
        ]

        for r in self.results:
            row = r.to_dict()
            status = "PASS" if r.success else "FAIL"
            line = (
                f"[{status}] {r.filename:<20} {r.test_date:<12} "
                f"expected {row['expectedValidFrom']} -> {row['expectedExpiry']}"
            )
            if 'actualValidFrom' in row:
                line += f" | actual {row['actualValidFrom']} -> {row['actualExpiry']}"
            if r.error:
                line += f" | {r.error}"
            lines.append(line)

        lines.append("=" * 60)
        return "\n".join(lines)


class ReportExporter:
    """
    Writes an EvalReport as .txt, .json or .xlsx.

    Example:
        >>> ReportExporter().export(report, "outputs/reports/evals.xlsx")
    """

    COLUMNS = [
        ('Filename', 'filename'),
        ('Test Date', 'testDate'),
        ('Success', 'success'),
        ('Expected Valid From', 'expectedValidFrom'),
        ('Expected Expiry', 'expectedExpiry'),
        ('Actual Valid From', 'actualValidFrom'),
        ('Actual Expiry', 'actualExpiry'),
        ('Error', 'error'),
    ]

    FORMATS = ('txt', 'json', 'xlsx')

    def export(self, report: EvalReport, output_path: Union[str, Path], format: Optional[str] = None) -> str:
        """
        Write the report to output_path.

        Args:
            report: Report to export.
            output_path: Destination file.
            format: 'txt', 'json' or 'xlsx'; inferred from the suffix if None.

        Returns:
            Path of the written file.

        Raises:
            ReportExportError: Unsupported format or write failure.
        """
        path = Path(output_path)
        format = (format or path.suffix.lstrip('.') or 'json').lower()

        if format not in self.FORMATS:
            raise ReportExportError(str(path), f"Unsupported format: {format}")

        ensure_directory(path.parent)

        try:
            if format == 'txt':
                path.write_text(report.print_report(), encoding='utf-8')
            elif format == 'json':
                path.write_text(json.dumps(report.to_dict(), indent=2), encoding='utf-8')
            else:
                self._write_workbook(report, path)
        except OSError as e:
            raise ReportExportError(str(path), str(e))

        logger.info(f"Report saved to: {path}")
        return str(path)

    def _write_workbook(self, report: EvalReport, path: Path) -> None:
        workbook = openpyxl.Workbook()
        results_sheet = workbook.active
        results_sheet.title = "Results"

        results_sheet.append([title for title, _ in self.COLUMNS])
        for cell in results_sheet[1]:
            cell.font = _HEADER_FONT
            cell.fill = _HEADER_FILL
            cell.alignment = Alignment(horizontal="center", vertical="center")
            cell.border = _CELL_BORDER

        rows = [r.to_dict() for r in report.results]
        for row in rows:
            results_sheet.append([row.get(key, '') for _, key in self.COLUMNS])
            for cell in results_sheet[results_sheet.max_row]:
                cell.border = _CELL_BORDER
                if not row['success']:
                    cell.fill = _FAIL_FILL

        for index, (title, key) in enumerate(self.COLUMNS, 1):
            widest = max([len(title)] + [len(str(row.get(key, ''))) for row in rows])
            results_sheet.column_dimensions[get_column_letter(index)].width = min(widest + 2, 60)

        results_sheet.freeze_panes = 'A2'

        summary = workbook.create_sheet(title="Summary")
        for label, value in [
            ("Timestamp", report.timestamp),
            ("Provider", report.provider or ''),
            ("Passed", report.passed),
            ("Total", report.total),
            ("Overall Success", report.overall_success),
        ]:
            summary.append([label, value])
            summary.cell(row=summary.max_row, column=1).font = Font(bold=True)
        summary.column_dimensions['A'].width = 18
        summary.column_dimensions['B'].width = 32

        workbook.save(path)
