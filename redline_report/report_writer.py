from __future__ import annotations

import re
from datetime import date
from io import BytesIO
from pathlib import Path
from typing import Sequence

from docx import Document
from docx.document import Document as DocxDocument
from docx.enum.section import WD_ORIENT, WD_SECTION
from docx.enum.style import WD_STYLE_TYPE
from docx.enum.text import WD_ALIGN_PARAGRAPH, WD_COLOR_INDEX, WD_UNDERLINE
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Emu, Pt, RGBColor

from . import config
from .paragraph_builder import LineBreak, RenderedParagraph, TextSegment
from .report import ReportSection
from .report_styles import ReportStyle, build_report_styles, check_report_styles

HIGHLIGHT_COLORS = {
    "black": WD_COLOR_INDEX.BLACK,
    "blue": WD_COLOR_INDEX.BLUE,
    "cyan": WD_COLOR_INDEX.TURQUOISE,
    "green": WD_COLOR_INDEX.BRIGHT_GREEN,
    "magenta": WD_COLOR_INDEX.PINK,
    "red": WD_COLOR_INDEX.RED,
    "yellow": WD_COLOR_INDEX.YELLOW,
    "white": WD_COLOR_INDEX.WHITE,
    "darkBlue": WD_COLOR_INDEX.DARK_BLUE,
    "darkCyan": WD_COLOR_INDEX.TEAL,
    "darkGreen": WD_COLOR_INDEX.GREEN,
    "darkMagenta": WD_COLOR_INDEX.VIOLET,
    "darkRed": WD_COLOR_INDEX.DARK_RED,
    "darkYellow": WD_COLOR_INDEX.DARK_YELLOW,
    "darkGray": WD_COLOR_INDEX.GRAY_50,
    "lightGray": WD_COLOR_INDEX.GRAY_25,
}

UNDERLINE_KINDS = {
    "single": WD_UNDERLINE.SINGLE,
    "words": WD_UNDERLINE.WORDS,
    "double": WD_UNDERLINE.DOUBLE,
    "thick": WD_UNDERLINE.THICK,
    "dotted": WD_UNDERLINE.DOTTED,
    "dottedHeavy": WD_UNDERLINE.DOTTED_HEAVY,
    "dash": WD_UNDERLINE.DASH,
    "dashedHeavy": WD_UNDERLINE.DASH_HEAVY,
    "dashLong": WD_UNDERLINE.DASH_LONG,
    "dashLongHeavy": WD_UNDERLINE.DASH_LONG_HEAVY,
    "dotDash": WD_UNDERLINE.DOT_DASH,
    "dashDotHeavy": WD_UNDERLINE.DOT_DASH_HEAVY,
    "dotDotDash": WD_UNDERLINE.DOT_DOT_DASH,
    "dashDotDotHeavy": WD_UNDERLINE.DOT_DOT_DASH_HEAVY,
    "wave": WD_UNDERLINE.WAVY,
    "wavyHeavy": WD_UNDERLINE.WAVY_HEAVY,
    "wavyDouble": WD_UNDERLINE.WAVY_DOUBLE,
}

REPLY_INDENT_PT = 18
TABLE_STYLE = "Table Grid"
_SPECIAL_CHARS = re.compile(r"(\t|\r)")


def write_report(
    sections: Sequence[ReportSection],
    styles: dict[str, ReportStyle] | None = None,
    output_path: str | Path | None = None,
    today: date | None = None,
) -> bytes:
    if not sections:
        raise ValueError("no documents to report")
    if styles is None:
        styles = build_report_styles()
    check_report_styles(styles)
    document = Document()
    _apply_styles(document, styles)
    stamp = config.date_today(today)
    for index, report_section in enumerate(sections):
        if index == 0:
            section = document.sections[0]
        else:
            section = document.add_section(WD_SECTION.CONTINUOUS)
        _setup_section(section, report_section.title, stamp)
        document.add_paragraph(report_section.title, style="FileName")
        if report_section.error is not None:
            document.add_paragraph(f"Extraction failed: {report_section.error}")
            continue
        _add_table(document, section, report_section, styles)
    buffer = BytesIO()
    document.save(buffer)
    data = buffer.getvalue()
    if output_path is not None:
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    return data


def _apply_styles(document: DocxDocument, styles: dict[str, ReportStyle]) -> None:
    existing = {style.name for style in document.styles}
    for report_style in styles.values():
        kind = (
            WD_STYLE_TYPE.PARAGRAPH
            if report_style.kind == "paragraph"
            else WD_STYLE_TYPE.CHARACTER
        )
        if report_style.name in existing:
            style = document.styles[report_style.name]
        else:
            style = document.styles.add_style(report_style.name, kind)
        if report_style.based_on and report_style.based_on != report_style.name:
            if kind == WD_STYLE_TYPE.PARAGRAPH:
                style.base_style = document.styles[report_style.based_on]
        font = style.font
        if report_style.font_name:
            font.name = report_style.font_name
        if report_style.font_size_pt is not None:
            font.size = Pt(report_style.font_size_pt)
        if report_style.bold is not None:
            font.bold = report_style.bold
        if report_style.color:
            font.color.rgb = RGBColor.from_string(report_style.color)
        if report_style.strike is not None:
            font.strike = report_style.strike
        if report_style.underline:
            font.underline = UNDERLINE_KINDS[report_style.underline]
        if report_style.shading_fill:
            _set_shading(style.element.get_or_add_rPr(), report_style)
        if kind == WD_STYLE_TYPE.PARAGRAPH:
            if report_style.space_before_pt is not None:
                style.paragraph_format.space_before = Pt(report_style.space_before_pt)
            if report_style.space_after_pt is not None:
                style.paragraph_format.space_after = Pt(report_style.space_after_pt)


def _set_shading(r_pr, report_style: ReportStyle) -> None:
    for old in r_pr.findall(qn("w:shd")):
        r_pr.remove(old)
    shd = OxmlElement("w:shd")
    shd.set(qn("w:val"), report_style.shading_pattern or "clear")
    shd.set(qn("w:color"), "auto")
    shd.set(qn("w:fill"), report_style.shading_fill)
    r_pr.append(shd)


def _setup_section(section, title: str, stamp: str) -> None:
    if section.orientation != WD_ORIENT.LANDSCAPE:
        width, height = section.page_width, section.page_height
        section.orientation = WD_ORIENT.LANDSCAPE
        section.page_width, section.page_height = height, width
    section.different_first_page_header_footer = True
    first_header = section.first_page_header
    first_header.is_linked_to_previous = False
    first_paragraph = first_header.paragraphs[0]
    first_paragraph.text = stamp
    first_paragraph.alignment = WD_ALIGN_PARAGRAPH.RIGHT
    header = section.header
    header.is_linked_to_previous = False
    header_paragraph = header.paragraphs[0]
    header_paragraph.text = title
    header_paragraph.alignment = WD_ALIGN_PARAGRAPH.LEFT
    for footer in (section.footer, section.first_page_footer):
        footer.is_linked_to_previous = False
        footer_paragraph = footer.paragraphs[0]
        footer_paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        _add_page_field(footer_paragraph)


def _add_page_field(paragraph) -> None:
    field = OxmlElement("w:fldSimple")
    field.set(qn("w:instr"), "PAGE")
    run = OxmlElement("w:r")
    text = OxmlElement("w:t")
    text.text = "1"
    run.append(text)
    field.append(run)
    paragraph._p.append(field)


def _add_table(document: DocxDocument, section, report_section: ReportSection, styles) -> None:
    columns = report_section.columns
    table = document.add_table(rows=1, cols=len(columns))
    table.style = document.styles[TABLE_STYLE]
    table.autofit = False
    usable = section.page_width - section.left_margin - section.right_margin
    widths = [Emu(int(usable * pct / 100)) for pct in report_section.widths]
    header_row = table.rows[0]
    _repeat_as_header(header_row)
    for cell, label, width in zip(header_row.cells, columns, widths):
        cell.width = width
        cell.paragraphs[0].add_run(label).bold = True
    for row in report_section.rows:
        cells = table.add_row().cells
        for cell, width in zip(cells, widths):
            cell.width = width
        cells[0].paragraphs[0].add_run(row.location)
        cells[1].paragraphs[0].add_run(row.source)
        cells[2].paragraphs[0].add_run(row.style)
        _render_paragraph(cells[3].paragraphs[0], row.paragraph, styles)
        for index, body in enumerate(row.annotations):
            target = cells[4].paragraphs[0] if index == 0 else cells[4].add_paragraph()
            if body is not None:
                _render_paragraph(target, body, styles)


def _repeat_as_header(row) -> None:
    tr_pr = row._tr.get_or_add_trPr()
    marker = OxmlElement("w:tblHeader")
    marker.set(qn("w:val"), "true")
    tr_pr.append(marker)


def _render_paragraph(paragraph, rendered: RenderedParagraph, styles: dict[str, ReportStyle]) -> None:
    if rendered.indent_level:
        paragraph.paragraph_format.left_indent = Pt(REPLY_INDENT_PT * rendered.indent_level)
    for segment in rendered.segments:
        _render_segment(paragraph, segment, styles)


def _render_segment(paragraph, segment: TextSegment, styles: dict[str, ReportStyle]) -> None:
    run = paragraph.add_run()
    for piece in segment.pieces:
        if isinstance(piece, LineBreak):
            run.add_break()
            continue
        for chunk in _SPECIAL_CHARS.split(piece):
            if chunk == "\t":
                run.add_tab()
            elif chunk == "\r":
                run._r.append(OxmlElement("w:cr"))
            elif chunk:
                run.add_text(chunk)
    if segment.character_style:
        run.style = segment.character_style
    if segment.anchor is not None and segment.change_style is not None:
        _apply_change_overlay(run, styles[segment.change_style.value])
    fmt = segment.format
    font = run.font
    if fmt.bold:
        font.bold = True
    if fmt.italic:
        font.italic = True
    if fmt.all_caps:
        font.all_caps = True
    if fmt.small_caps:
        font.small_caps = True
    if fmt.strike:
        font.strike = True
    if fmt.double_strike:
        font.double_strike = True
    if fmt.highlight in HIGHLIGHT_COLORS:
        font.highlight_color = HIGHLIGHT_COLORS[fmt.highlight]
    if fmt.underline:
        font.underline = UNDERLINE_KINDS.get(fmt.underline, WD_UNDERLINE.SINGLE)
    if fmt.superscript:
        font.superscript = True
    if fmt.subscript:
        font.subscript = True


def _apply_change_overlay(run, change: ReportStyle) -> None:
    if change.color:
        run.font.color.rgb = RGBColor.from_string(change.color)
    if change.strike:
        run.font.strike = True
    if change.underline:
        run.font.underline = UNDERLINE_KINDS[change.underline]
