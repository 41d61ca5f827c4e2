import unittest
from datetime import datetime

from docx_factory import (
    XML_HEADER,
    abstract_num,
    bare_docx,
    build_docx,
    corrupt_member_docx,
    num,
    numbered,
    numbering_xml,
    part_xml,
    run,
)

from redline_report.classifier import Criteria
from redline_report.extraction_log import BatchLogState, ExtractionLogState
from redline_report.extractor import (
    ExtractedParagraph,
    ParagraphExtractor,
    ParagraphSource,
    extract_from_bytes,
    run_batch,
)
from redline_report.package_reader import DocumentPackage, RequiredPartMissingError
from redline_report.paragraph_builder import ChangeStyle, RenderedParagraph

REDLINE = Criteria(redline=True)
INSERTED = f'<w:p>{run("Keep ")}<w:ins w:id="1">{run("added")}</w:ins></w:p>'
PLAIN = f'<w:p>{run("Nothing to see")}</w:p>'
RELS_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
HEADER_TYPE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/header"
FOOTER_TYPE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/footer"


def _extract(data: bytes, criteria: Criteria = REDLINE, log_state=None) -> list[ExtractedParagraph]:
    package = DocumentPackage.from_bytes(data, "doc.docx", log_state)
    return ParagraphExtractor(criteria).extract(package, log_state)


class BodyExtractionTests(unittest.TestCase):
    def test_keeps_only_interesting_paragraphs_with_text(self) -> None:
        body = INSERTED + PLAIN + '<w:p><w:ins w:id="2"><w:r><w:t>  </w:t></w:r></w:ins></w:p>'
        log_state = ExtractionLogState(file_name="doc.docx")
        extracted = _extract(build_docx(body), log_state=log_state)
        self.assertEqual(len(extracted), 1)
        item = extracted[0]
        self.assertEqual(item.source, ParagraphSource.DOCUMENT)
        self.assertEqual(item.location_label, "Sect 1, p 1")
        self.assertEqual(item.paragraph.text, "Keep added")
        self.assertEqual(item.paragraph.segments[1].change_style, ChangeStyle.INSERTION)
        self.assertFalse(item.has_annotations)
        self.assertEqual(log_state.paragraph_count, 3)
        self.assertEqual(log_state.extracted_count, 1)

    def test_pages_and_sections(self) -> None:
        body = (
            INSERTED
            + f'<w:p><w:r><w:lastRenderedPageBreak/></w:r>{run("x")}<w:ins w:id="3">{run("p2")}</w:ins></w:p>'
            + '<w:p><w:pPr><w:sectPr/></w:pPr></w:p>'
            + INSERTED
        )
        labels = [item.location_label for item in _extract(build_docx(body))]
        self.assertEqual(labels, ["Sect 1, p 1", "Sect 1, p 2", "Sect 2, p 1"])

    def test_numbering_replaces_location_and_carries_forward(self) -> None:
        numbering = numbering_xml(abstract_num("0", [("decimal", "%1."), ("lowerLetter", "(%2)")]), num("1", "0"))
        body = (
            numbered("1", 0, "Heading")
            + numbered("1", 1, "Clause", extra=f'<w:ins w:id="4">{run("new ")}</w:ins>')
            + INSERTED
        )
        extracted = _extract(build_docx(body, {"word/numbering.xml": numbering}))
        self.assertEqual([item.numbering for item in extracted], ["(a)", "(a)"])
        self.assertEqual(extracted[0].location_label, "(a)")

    def test_section_break_clears_carry_forward_but_keeps_counters(self) -> None:
        numbering = numbering_xml(abstract_num("0", [("decimal", "%1.")]), num("1", "0"))
        change = f'<w:ins w:id="6">{run("edit ")}</w:ins>'
        body = (
            numbered("1", 0, "First", extra=change)
            + '<w:p><w:pPr><w:sectPr/></w:pPr></w:p>'
            + INSERTED
            + numbered("1", 0, "Second", extra=change)
        )
        extracted = _extract(build_docx(body, {"word/numbering.xml": numbering}))
        self.assertEqual([item.location_label for item in extracted], ["1.", "Sect 2, p 1", "2."])

    def test_explicit_list_zero_skips_style_numbering(self) -> None:
        numbering = numbering_xml(abstract_num("0", [("decimal", "%1.")]), num("1", "0"))
        styles = part_xml(
            "styles",
            '<w:style w:type="paragraph" w:styleId="Heading1"><w:name w:val="heading 1"/>'
            '<w:pPr><w:numPr><w:ilvl w:val="0"/><w:numId w:val="1"/></w:numPr></w:pPr></w:style>',
        )
        change = f'<w:ins w:id="7">{run("Title")}</w:ins>'
        body = (
            '<w:p><w:pPr><w:pStyle w:val="Heading1"/><w:numPr><w:numId w:val="0"/></w:numPr></w:pPr>'
            f"{change}</w:p>"
            f'<w:p><w:pPr><w:pStyle w:val="Heading1"/></w:pPr>{change}</w:p>'
        )
        extracted = _extract(
            bare_docx(body, {"word/numbering.xml": numbering, "word/styles.xml": styles})
        )
        self.assertEqual([item.location_label for item in extracted], ["Sect 1, p 1", "1."])

    def test_manual_numbering_label(self) -> None:
        body = f'<w:p><w:r><w:t>4.2</w:t><w:tab/></w:r><w:ins w:id="1">{run("Payment terms")}</w:ins></w:p>'
        (item,) = _extract(bare_docx(body))
        self.assertEqual(item.location_label, "4.2")

    def test_annotations_are_attached(self) -> None:
        footnotes = part_xml(
            "footnotes",
            f'<w:footnote w:id="1"><w:p>{run("A note.")}</w:p></w:footnote>',
        )
        body = f'<w:p>{run("Text")}<w:r><w:footnoteReference w:id="1"/></w:r><w:r><w:footnoteReference w:id="8"/></w:r></w:p>'
        (item,) = _extract(bare_docx(body, {"word/footnotes.xml": footnotes}), Criteria(footnotes=True))
        self.assertTrue(item.has_annotations)
        self.assertEqual(
            [note.text if note is not None else None for note in item.annotations],
            ["Footnote 1: ", "A note.", None],
        )

    def test_missing_body(self) -> None:
        data = bare_docx(None, {"word/document.xml": f'{XML_HEADER}<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main"/>'})
        log_state = ExtractionLogState(file_name="doc.docx")
        self.assertEqual(_extract(data, log_state=log_state), [])
        self.assertEqual(log_state.warnings[0].rule, "document")


class RegionExtractionTests(unittest.TestCase):
    def test_headers_and_footers_are_labelled_by_section(self) -> None:
        rels = (
            f'{XML_HEADER}<Relationships xmlns="{RELS_NS}">'
            f'<Relationship Id="rId1" Type="{HEADER_TYPE}" Target="header1.xml"/>'
            f'<Relationship Id="rId2" Type="{FOOTER_TYPE}" Target="footer1.xml"/>'
            "</Relationships>"
        )
        body = (
            PLAIN
            + '<w:sectPr><w:headerReference w:type="default" r:id="rId1"/>'
            + '<w:footerReference w:type="default" r:id="rId2"/></w:sectPr>'
        )
        parts = {
            "word/_rels/document.xml.rels": rels,
            "word/header1.xml": part_xml("hdr", INSERTED),
            "word/footer1.xml": part_xml("ftr", f'<w:p><w:del w:id="9"><w:r><w:delText>Draft</w:delText></w:r></w:del></w:p>'),
        }
        extracted = _extract(bare_docx(body, parts))
        self.assertEqual(
            [(item.source, item.location_label) for item in extracted],
            [(ParagraphSource.HEADER, "Sect 1, Header"), (ParagraphSource.FOOTER, "Sect 1, Footer")],
        )
        self.assertIsNone(extracted[0].page)

    def test_header_lists_use_their_own_counters(self) -> None:
        numbering = numbering_xml(abstract_num("0", [("decimal", "%1.")]), num("1", "0"))
        change = f'<w:ins w:id="8">{run("edit")}</w:ins>'
        rels = (
            f'{XML_HEADER}<Relationships xmlns="{RELS_NS}">'
            f'<Relationship Id="rId1" Type="{HEADER_TYPE}" Target="header1.xml"/>'
            "</Relationships>"
        )
        body = (
            numbered("1", 0, "One", extra=change)
            + numbered("1", 0, "Two", extra=change)
            + '<w:sectPr><w:headerReference w:type="default" r:id="rId1"/></w:sectPr>'
        )
        parts = {
            "word/_rels/document.xml.rels": rels,
            "word/numbering.xml": numbering,
            "word/header1.xml": part_xml("hdr", numbered("1", 0, "Draft", extra=change)),
        }
        extracted = _extract(bare_docx(body, parts))
        self.assertEqual(
            [(item.source, item.location_label) for item in extracted],
            [
                (ParagraphSource.DOCUMENT, "1."),
                (ParagraphSource.DOCUMENT, "2."),
                (ParagraphSource.HEADER, "1."),
            ],
        )


class BatchTests(unittest.TestCase):
    def test_two_documents_redline_only(self) -> None:
        first = build_docx(INSERTED)
        second = build_docx(PLAIN)
        batch_log = BatchLogState(start_time=datetime(2024, 1, 1))
        result = run_batch([(first, "one.docx"), (second, "two.docx")], REDLINE, batch_log)
        self.assertEqual(result.names, ["one.docx", "two.docx"])
        self.assertEqual(result.failures, [])
        self.assertEqual(len(result.extracted[0]), 1)
        self.assertEqual(result.extracted[0][0].location_label, "Sect 1, p 1")
        self.assertEqual(result.extracted[1], [])
        self.assertEqual([doc.file_name for doc in batch_log.documents], ["one.docx", "two.docx"])

    def test_failing_document_does_not_stop_batch(self) -> None:
        result = run_batch([(b"junk", "bad.docx"), (build_docx(INSERTED), "good.docx")], REDLINE)
        self.assertEqual(result.extracted[0], None)
        self.assertEqual(result.failures[0].name, "bad.docx")
        self.assertEqual(result.failures[0].error, "invalid docx file: bad.docx")
        self.assertEqual([name for name, _ in result.succeeded], ["good.docx"])

    def test_corrupt_member_does_not_stop_batch(self) -> None:
        result = run_batch(
            [(corrupt_member_docx(INSERTED), "bad.docx"), (build_docx(INSERTED), "good.docx")],
            REDLINE,
        )
        self.assertEqual([failure.name for failure in result.failures], ["bad.docx"])
        self.assertIsNone(result.extracted[0])
        self.assertEqual(len(result.extracted[1]), 1)

    def test_extract_from_bytes_records_errors(self) -> None:
        log_state = ExtractionLogState(file_name="empty.docx")
        with self.assertRaises(RequiredPartMissingError):
            extract_from_bytes(bare_docx(None), "empty.docx", REDLINE, log_state)
        self.assertIn("word/document.xml", log_state.error)
        self.assertIsNotNone(log_state.elapsed_sec)


class ExtractedParagraphTests(unittest.TestCase):
    def test_location_label(self) -> None:
        paragraph = RenderedParagraph.plain("x")
        numbered_item = ExtractedParagraph(paragraph, (), ParagraphSource.DOCUMENT, 2, page=3, numbering="1.1")
        self.assertEqual(numbered_item.location_label, "1.1")
        item = ExtractedParagraph(paragraph, (), ParagraphSource.DOCUMENT, 2, page=3)
        self.assertEqual(item.location_label, "Sect 2, p 3")
        footer = ExtractedParagraph(paragraph, (), ParagraphSource.FOOTER, 4)
        self.assertEqual(footer.location_label, "Sect 4, Footer")


if __name__ == "__main__":
    unittest.main()
