"""CSV and YAML reports for a grading run."""

import csv
import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, List

import yaml

from .models import GradingResult, GradingRun

LOG = logging.getLogger(__name__)

CSV_HEADER = ["filename", "total_score", "feedback_breakdown"]
DEFAULT_CSV_FILENAME = "grading_results.csv"
FEEDBACK_SEPARATOR = "; "


def results_to_csv(results: Iterable[GradingResult]) -> str:
    """
    Render results as CSV text, one row per result in arrival order.

    Every field is quoted and embedded quotes are doubled. Feedback items
    are joined into a single field.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    buffer.write(",".join(CSV_HEADER) + "\n")
    for result in results:
        writer.writerow([
            result.filename,
            result.total_score,
            FEEDBACK_SEPARATOR.join(result.feedback_items),
        ])
    return buffer.getvalue().rstrip("\n")


def write_csv(results: Iterable[GradingResult], output_path: Path) -> Path:
    """Write the CSV report to disk."""
    output_path = Path(output_path)
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        f.write(results_to_csv(results))
    LOG.info(f"CSV report saved to: {output_path}")
    return output_path


def save_summary(grading_run: GradingRun, output_path: Path):
    """
    Save grading summary to YAML file.

    Args:
        grading_run: Outcomes of the run
        output_path: Path to save summary file
    """
    submissions: List[dict] = [
        {
            'filename': r.filename,
            'success': True,
            'total_score': r.total_score,
            'breakdown': r.feedback_items,
        }
        for r in grading_run.results
    ]
    submissions.extend(
        {'filename': e.filename, 'success': False, 'error_message': e.error}
        for e in grading_run.errors
    )
    summary = {
        'grading_summary': {
            'timestamp': datetime.now().isoformat(),
            'total_submissions': grading_run.total,
            'successful': len(grading_run.results),
            'failed': len(grading_run.errors),
            'cancelled': grading_run.cancelled,
        },
        'submissions': submissions,
    }

    with open(output_path, 'w') as f:
        yaml.dump(summary, f, default_flow_style=False, sort_keys=False)
