from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from .extractor import BatchResult, DocumentFailure, ExtractedParagraph
from .paragraph_builder import RenderedParagraph

REPORT_COLUMNS = ("Ref", "Source", "Style", "Paragraph", "Comment")
WIDTHS_WITH_ANNOTATIONS = (8, 7, 10, 35, 40)
WIDTHS_WITHOUT_ANNOTATIONS = (8, 7, 10, 60, 15)


@dataclass(frozen=True)
class ReportRow:
    location: str
    source: str
    style: str
    paragraph: RenderedParagraph
    annotations: tuple[RenderedParagraph | None, ...] = ()


@dataclass
class ReportSection:
    title: str
    widths: tuple[int, ...]
    rows: list[ReportRow] = field(default_factory=list)
    columns: tuple[str, ...] = REPORT_COLUMNS
    error: str | None = None


def has_any_annotations(extracted: Sequence[Sequence[ExtractedParagraph] | None]) -> bool:
    return any(
        paragraph.has_annotations
        for group in extracted
        if group
        for paragraph in group
    )


def column_widths(with_annotations: bool) -> tuple[int, ...]:
    return WIDTHS_WITH_ANNOTATIONS if with_annotations else WIDTHS_WITHOUT_ANNOTATIONS


def build_row(paragraph: ExtractedParagraph) -> ReportRow:
    return ReportRow(
        location=paragraph.location_label,
        source=paragraph.source.display_name,
        style=paragraph.style_id or "",
        paragraph=paragraph.paragraph,
        annotations=paragraph.annotations,
    )


def build_sections(
    extracted: Sequence[Sequence[ExtractedParagraph] | None],
    names: Sequence[str],
    failures: Sequence[DocumentFailure] | None = None,
) -> list[ReportSection]:
    errors = {failure.name: failure.error for failure in failures or ()}
    widths = column_widths(has_any_annotations(extracted))
    sections: list[ReportSection] = []
    for index, group in enumerate(extracted):
        name = names[index] if index < len(names) else None
        if not name:
            raise ValueError(f"file name at index {index} is missing")
        if group is None:
            sections.append(
                ReportSection(
                    title=name,
                    widths=widths,
                    error=errors.get(name, "extraction failed"),
                )
            )
            continue
        sections.append(
            ReportSection(
                title=name,
                widths=widths,
                rows=[build_row(paragraph) for paragraph in group],
            )
        )
    return sections


def build_report(batch: BatchResult) -> list[ReportSection]:
    return build_sections(batch.extracted, batch.names, batch.failures)
