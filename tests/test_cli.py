import io
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from tempfile import TemporaryDirectory

from docx import Document

from docx_factory import build_docx, run

from redline_report import cli, config
from redline_report.classifier import Criteria

INSERTED = f'<w:p>{run("Keep ")}<w:ins w:id="1">{run("added")}</w:ins></w:p>'
HIGHLIGHT_PROPS = '<w:highlight w:val="yellow"/>'
HIGHLIGHTED = f'<w:p>{run("Marked", HIGHLIGHT_PROPS)}</w:p>'


class CriteriaArgsTests(unittest.TestCase):
    def test_defaults_without_flags(self) -> None:
        args = cli.build_arg_parser().parse_args(["a.docx"])
        self.assertEqual(cli.criteria_from_args(args), Criteria(redline=True))

    def test_flags_replace_defaults(self) -> None:
        args = cli.build_arg_parser().parse_args(["a.docx", "--highlight", "--square-brackets"])
        self.assertEqual(
            cli.criteria_from_args(args),
            Criteria(highlight=True, square_brackets=True),
        )


class RunTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self._original_dirs = (config.OUTPUT_DIR, config.LOG_DIR)
        config.OUTPUT_DIR = self.tmp / "output"
        config.LOG_DIR = self.tmp / "logs"

    def tearDown(self) -> None:
        config.OUTPUT_DIR, config.LOG_DIR = self._original_dirs
        self._tmp.cleanup()

    def _write(self, name: str, body: str) -> str:
        path = self.tmp / name
        path.write_bytes(build_docx(body))
        return str(path)

    def test_generates_report_and_log(self) -> None:
        first = self._write("one.docx", INSERTED)
        second = self._write("two.docx", HIGHLIGHTED)
        output = self.tmp / "report.docx"
        stdout = io.StringIO()
        with redirect_stdout(stdout):
            code = cli.run([first, second, "-o", str(output)])
        self.assertEqual(code, 0)
        self.assertIn("合计提取段落：1", stdout.getvalue())
        document = Document(str(output))
        self.assertEqual(len(document.tables), 2)
        self.assertEqual(document.tables[0].rows[1].cells[0].text, "Sect 1, p 1")
        self.assertEqual(len(document.tables[1].rows), 1)
        logs = list((self.tmp / "logs").glob("extraction_*.log"))
        self.assertEqual(len(logs), 1)
        self.assertIn("criteria: redline", logs[0].read_text(encoding="utf-8"))

    def test_failed_document_sets_exit_code(self) -> None:
        good = self._write("good.docx", INSERTED)
        bad = self.tmp / "bad.docx"
        bad.write_bytes(b"nope")
        with redirect_stdout(io.StringIO()):
            code = cli.run([good, str(bad), "--no-log"])
        self.assertEqual(code, 1)
        self.assertTrue(config.default_report_path().exists())
        self.assertFalse((self.tmp / "logs").exists())

    def test_missing_input(self) -> None:
        stderr = io.StringIO()
        with redirect_stderr(stderr):
            code = cli.run([str(self.tmp / "missing.docx")])
        self.assertEqual(code, 2)
        self.assertIn("missing.docx", stderr.getvalue())


if __name__ == "__main__":
    unittest.main()
