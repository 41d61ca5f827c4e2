from __future__ import annotations

from datetime import date, datetime
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
OUTPUT_DIR = PROJECT_ROOT / "output"
LOG_DIR = PROJECT_ROOT / "logs"

LOG_FILE_PREFIX = "extraction"
LOG_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
LOG_RETENTION_DAYS = 5

REPORT_FILE_PREFIX = "report_"
REPORT_DATE_FORMAT = "%Y-%m-%d"

MAX_NUMBERING_LEVELS = 9
DEFAULT_CRITERIA = {
    "redline": True,
    "highlight": False,
    "square_brackets": False,
    "comments": False,
    "footnotes": False,
    "endnotes": False,
}


def ensure_base_dirs() -> None:
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    LOG_DIR.mkdir(parents=True, exist_ok=True)


def build_log_path(ts: datetime | None = None) -> Path:
    if ts is None:
        ts = datetime.now()
    name = f"{LOG_FILE_PREFIX}_{ts.strftime(LOG_TIMESTAMP_FORMAT)}.log"
    return LOG_DIR / name


def date_today(today: date | None = None) -> str:
    if today is None:
        today = date.today()
    return today.strftime(REPORT_DATE_FORMAT)


def default_report_name(today: date | None = None) -> str:
    return f"{REPORT_FILE_PREFIX}{date_today(today)}.docx"


def default_report_path(today: date | None = None) -> Path:
    return OUTPUT_DIR / default_report_name(today)


def cleanup_logs(retention_days: int = LOG_RETENTION_DAYS, now: datetime | None = None) -> int:
    if retention_days <= 0:
        return 0
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
    except OSError:
        return 0
    base_time = now or datetime.now()
    cutoff = base_time.timestamp() - retention_days * 86400
    removed = 0
    for path in LOG_DIR.glob(f"{LOG_FILE_PREFIX}_*.log"):
        try:
            if path.stat().st_mtime < cutoff:
                path.unlink()
                removed += 1
        except OSError:
            continue
    return removed
