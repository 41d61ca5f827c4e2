import os
import unittest
from datetime import date, datetime
from pathlib import Path
from tempfile import TemporaryDirectory

from redline_report import config


class ConfigTests(unittest.TestCase):
    def test_base_dirs_paths(self) -> None:
        self.assertEqual(config.OUTPUT_DIR, config.PROJECT_ROOT / "output")
        self.assertEqual(config.LOG_DIR, config.PROJECT_ROOT / "logs")

    def test_build_log_path(self) -> None:
        ts = datetime(2024, 1, 2, 3, 4, 5)
        log_path = config.build_log_path(ts)
        self.assertEqual(log_path.parent, config.LOG_DIR)
        self.assertEqual(log_path.name, "extraction_20240102_030405.log")

    def test_build_log_path_default_timestamp(self) -> None:
        log_path = config.build_log_path()
        self.assertEqual(log_path.parent, config.LOG_DIR)
        self.assertTrue(log_path.name.startswith("extraction_"))

    def test_default_report_path(self) -> None:
        today = date(2024, 3, 9)
        self.assertEqual(config.date_today(today), "2024-03-09")
        self.assertEqual(config.default_report_name(today), "report_2024-03-09.docx")
        self.assertEqual(config.default_report_path(today).parent, config.OUTPUT_DIR)

    def test_default_criteria(self) -> None:
        enabled = [name for name, value in config.DEFAULT_CRITERIA.items() if value]
        self.assertEqual(enabled, ["redline"])
        self.assertEqual(config.MAX_NUMBERING_LEVELS, 9)

    def test_ensure_base_dirs(self) -> None:
        config.ensure_base_dirs()
        self.assertTrue(config.OUTPUT_DIR.is_dir())
        self.assertTrue(config.LOG_DIR.is_dir())

    def test_cleanup_logs_removes_old_files(self) -> None:
        original_log_dir = config.LOG_DIR
        with TemporaryDirectory() as tmpdir:
            config.LOG_DIR = Path(tmpdir)
            try:
                old_log = config.LOG_DIR / f"{config.LOG_FILE_PREFIX}_old.log"
                new_log = config.LOG_DIR / f"{config.LOG_FILE_PREFIX}_new.log"
                other = config.LOG_DIR / "notes.log"
                for path in (old_log, new_log, other):
                    path.write_text("x", encoding="utf-8")
                base_time = datetime(2024, 1, 10, 12, 0, 0)
                old_time = base_time.timestamp() - 6 * 86400
                new_time = base_time.timestamp() - 2 * 86400
                os.utime(old_log, (old_time, old_time))
                os.utime(other, (old_time, old_time))
                os.utime(new_log, (new_time, new_time))

                removed = config.cleanup_logs(retention_days=5, now=base_time)

                self.assertEqual(removed, 1)
                self.assertFalse(old_log.exists())
                self.assertTrue(new_log.exists())
                self.assertTrue(other.exists())
                self.assertEqual(config.cleanup_logs(retention_days=0, now=base_time), 0)
            finally:
                config.LOG_DIR = original_log_dir


if __name__ == "__main__":
    unittest.main()
