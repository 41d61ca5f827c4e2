import unittest
from datetime import date
from io import BytesIO
from pathlib import Path
from tempfile import TemporaryDirectory

from docx import Document
from docx.enum.section import WD_ORIENT
from docx.oxml.ns import qn

from redline_report.paragraph_builder import (
    LINE_BREAK,
    AnnotationKind,
    ChangeStyle,
    RenderedParagraph,
    RunFormat,
    TextSegment,
)
from redline_report.report import REPORT_COLUMNS, ReportRow, ReportSection, WIDTHS_WITH_ANNOTATIONS
from redline_report.report_writer import write_report


def _sections() -> list[ReportSection]:
    paragraph = RenderedParagraph(
        segments=(
            TextSegment(("Keep\t",)),
            TextSegment(("old",), change_style=ChangeStyle.DELETION),
            TextSegment(("new", LINE_BREAK, "line"), RunFormat(bold=True), ChangeStyle.INSERTION),
            TextSegment(("[Cmt 1]",), change_style=ChangeStyle.INSERTION, anchor=AnnotationKind.COMMENT),
        )
    )
    notes = (
        RenderedParagraph.plain("Comment 1 (JD): ", RunFormat(italic=True)),
        RenderedParagraph.plain("Reply text", indent_level=1),
        None,
    )
    return [
        ReportSection(
            title="a.docx",
            widths=WIDTHS_WITH_ANNOTATIONS,
            rows=[ReportRow("1.1", "Document", "Heading2", paragraph, notes)],
        ),
        ReportSection(title="b.docx", widths=WIDTHS_WITH_ANNOTATIONS, error="invalid docx file: b.docx"),
    ]


class WriteReportTests(unittest.TestCase):
    def _open(self):
        data = write_report(_sections(), today=date(2024, 6, 1))
        return Document(BytesIO(data))

    def test_table_layout(self) -> None:
        document = self._open()
        self.assertEqual(len(document.tables), 1)
        table = document.tables[0]
        self.assertEqual([cell.text for cell in table.rows[0].cells], list(REPORT_COLUMNS))
        self.assertTrue(all(cell.paragraphs[0].runs[0].bold for cell in table.rows[0].cells))
        self.assertIsNotNone(table.rows[0]._tr.find(f"{qn('w:trPr')}/{qn('w:tblHeader')}"))
        row = table.rows[1].cells
        self.assertEqual(row[0].text, "1.1")
        self.assertEqual(row[1].text, "Document")
        self.assertEqual(row[2].text, "Heading2")
        self.assertEqual(row[3].text, "Keep\toldnew\nline[Cmt 1]")

    def test_character_styles(self) -> None:
        runs = self._open().tables[0].rows[1].cells[3].paragraphs[0].runs
        self.assertEqual([run.style.name for run in runs[1:]], ["Deletion", "Insertion", "CommentAnchor"])
        self.assertTrue(runs[2].bold)
        self.assertEqual(str(runs[3].font.color.rgb), "0000FF")

    def test_annotations_cell(self) -> None:
        cell = self._open().tables[0].rows[1].cells[4]
        texts = [paragraph.text for paragraph in cell.paragraphs]
        self.assertEqual(texts, ["Comment 1 (JD): ", "Reply text", ""])
        self.assertTrue(cell.paragraphs[0].runs[0].italic)
        self.assertIsNotNone(cell.paragraphs[1].paragraph_format.left_indent)

    def test_sections_and_failures(self) -> None:
        document = self._open()
        texts = [paragraph.text for paragraph in document.paragraphs]
        self.assertIn("a.docx", texts)
        self.assertIn("Extraction failed: invalid docx file: b.docx", texts)
        self.assertEqual(len(document.sections), 2)
        for section, title in zip(document.sections, ("a.docx", "b.docx")):
            self.assertEqual(section.orientation, WD_ORIENT.LANDSCAPE)
            self.assertGreater(section.page_width, section.page_height)
            self.assertTrue(section.different_first_page_header_footer)
            self.assertEqual(section.header.paragraphs[0].text, title)
            self.assertEqual(section.first_page_header.paragraphs[0].text, "2024-06-01")
            self.assertIsNotNone(section.footer.paragraphs[0]._p.find(qn("w:fldSimple")))
        self.assertEqual(document.styles["FileName"].font.bold, True)

    def test_writes_output_path(self) -> None:
        with TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "nested" / "report.docx"
            data = write_report(_sections(), output_path=path)
            self.assertEqual(path.read_bytes(), data)

    def test_empty_report(self) -> None:
        with self.assertRaises(ValueError):
            write_report([])


if __name__ == "__main__":
    unittest.main()
