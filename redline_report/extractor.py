from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from time import perf_counter
from typing import Iterable

from lxml import etree

from .annotations import AnnotationParts, resolve_paragraph_annotations
from .classifier import Criteria, has_text_content, is_interesting
from .extraction_log import BatchLogState, ExtractionLogState, warn
from .numbering import (
    AbstractToFormats,
    CounterState,
    ListToAbstract,
    build_numbering_maps,
    manual_numbering_label,
    numbering_removed,
    track_numbering,
    track_style_numbering,
)
from .ooxml import NS, paragraph_style_id, w_tag
from .package_reader import (
    DOCUMENT_PART,
    NUMBERING_PART,
    STYLES_PART,
    DocumentPackage,
)
from .paragraph_builder import RenderedParagraph, build_paragraph
from .style_reader import StyleRecord, build_style_maps, find_style_cycles


class ParagraphSource(str, Enum):
    DOCUMENT = "document"
    HEADER = "header"
    FOOTER = "footer"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class ExtractedParagraph:
    paragraph: RenderedParagraph
    annotations: tuple[RenderedParagraph | None, ...]
    source: ParagraphSource
    section: int
    page: int | None = None
    numbering: str | None = None
    style_id: str | None = None

    @property
    def location_label(self) -> str:
        if self.numbering:
            return self.numbering
        if self.source is ParagraphSource.DOCUMENT:
            return f"Sect {self.section}, p {self.page}"
        return f"Sect {self.section}, {self.source.display_name}"

    @property
    def has_annotations(self) -> bool:
        return any(body is not None for body in self.annotations)


@dataclass
class NumberingContext:
    list_to_abstract: ListToAbstract = field(default_factory=dict)
    abstract_to_formats: AbstractToFormats = field(default_factory=dict)
    styles: dict[str, StyleRecord] = field(default_factory=dict)
    direct_enabled: bool = False
    style_enabled: bool = False

    @classmethod
    def from_package(
        cls,
        package: DocumentPackage,
        log_state: ExtractionLogState | None = None,
    ) -> "NumberingContext":
        numbering_root = package.get_part(NUMBERING_PART)
        styles_root = package.get_part(STYLES_PART)
        list_to_abstract, abstract_to_formats = build_numbering_maps(numbering_root)
        styles = build_style_maps(styles_root)
        for style_id in find_style_cycles(styles):
            warn(log_state, rule="style_cycle", reason="basedOn chain loops", style_id=style_id)
        return cls(
            list_to_abstract=list_to_abstract,
            abstract_to_formats=abstract_to_formats,
            styles=styles,
            direct_enabled=numbering_root is not None,
            style_enabled=styles_root is not None,
        )

    def label(
        self,
        paragraph: etree._Element,
        direct_counters: CounterState,
        style_counters: CounterState,
        log_state: ExtractionLogState | None = None,
        paragraph_index: int | None = None,
    ) -> str | None:
        label = None
        if numbering_removed(paragraph):
            return None
        if self.direct_enabled:
            label = track_numbering(
                paragraph,
                self.list_to_abstract,
                self.abstract_to_formats,
                direct_counters,
                log_state,
                paragraph_index,
            )
        if label is None and self.style_enabled:
            label = track_style_numbering(
                paragraph,
                self.styles,
                self.list_to_abstract,
                self.abstract_to_formats,
                style_counters,
                log_state,
                paragraph_index,
            )
        return label


@dataclass
class _BodyState:
    section: int = 1
    page: int = 1
    direct_counters: CounterState = field(default_factory=CounterState.fresh)
    style_counters: CounterState = field(default_factory=CounterState.fresh)
    last_label: str | None = None

    def close_section(self) -> None:
        self.section += 1
        self.page = 1
        self.last_label = None


class ParagraphExtractor:
    def __init__(self, criteria: Criteria) -> None:
        self.criteria = criteria

    def extract(
        self,
        package: DocumentPackage,
        log_state: ExtractionLogState | None = None,
    ) -> list[ExtractedParagraph]:
        document_root = package.require_part(DOCUMENT_PART)
        body = document_root.find("w:body", namespaces=NS)
        if body is None:
            warn(log_state, rule="document", reason="document part has no body")
            return []
        numbering = NumberingContext.from_package(package, log_state)
        parts = AnnotationParts.from_package(package)
        paragraphs = list(body.iter(w_tag("p")))
        if log_state is not None:
            log_state.paragraph_count = len(paragraphs)
        extracted = self._extract_body(paragraphs, numbering, parts, log_state)
        extracted.extend(self._extract_regions(package, body, paragraphs, numbering, parts, log_state))
        if log_state is not None:
            log_state.extracted_count = len(extracted)
        return extracted

    def _extract_body(
        self,
        paragraphs: list[etree._Element],
        numbering: NumberingContext,
        parts: AnnotationParts,
        log_state: ExtractionLogState | None,
    ) -> list[ExtractedParagraph]:
        state = _BodyState()
        extracted: list[ExtractedParagraph] = []
        for index, paragraph in enumerate(paragraphs):
            state.page += _count_page_breaks(paragraph)
            label = numbering.label(
                paragraph,
                state.direct_counters,
                state.style_counters,
                log_state,
                index,
            )
            if label is None:
                label = manual_numbering_label(paragraph)
            if label is None:
                label = state.last_label
            else:
                state.last_label = label
            if self._wanted(paragraph):
                extracted.append(
                    ExtractedParagraph(
                        paragraph=build_paragraph(paragraph),
                        annotations=tuple(resolve_paragraph_annotations(paragraph, parts, log_state)),
                        source=ParagraphSource.DOCUMENT,
                        section=state.section,
                        page=state.page,
                        numbering=label,
                        style_id=paragraph_style_id(paragraph),
                    )
                )
            if _ends_section(paragraph):
                state.close_section()
        return extracted

    def _extract_regions(
        self,
        package: DocumentPackage,
        body: etree._Element,
        paragraphs: list[etree._Element],
        numbering: NumberingContext,
        parts: AnnotationParts,
        log_state: ExtractionLogState | None,
    ) -> list[ExtractedParagraph]:
        sect_prs = section_properties(body, paragraphs)
        headers = package.section_region_parts(sect_prs, "header")
        footers = package.section_region_parts(sect_prs, "footer")
        counters = CounterState.fresh()
        extracted: list[ExtractedParagraph] = []
        for section_index in range(len(sect_prs)):
            for source, regions in (
                (ParagraphSource.HEADER, headers[section_index]),
                (ParagraphSource.FOOTER, footers[section_index]),
            ):
                for _part_name, root in regions:
                    extracted.extend(
                        self._extract_region(
                            root,
                            source,
                            section_index + 1,
                            numbering,
                            counters,
                            parts,
                            log_state,
                        )
                    )
        return extracted

    def _extract_region(
        self,
        root: etree._Element,
        source: ParagraphSource,
        section: int,
        numbering: NumberingContext,
        counters: CounterState,
        parts: AnnotationParts,
        log_state: ExtractionLogState | None,
    ) -> list[ExtractedParagraph]:
        extracted: list[ExtractedParagraph] = []
        for paragraph in root.iter(w_tag("p")):
            if not self._wanted(paragraph):
                continue
            label = numbering.label(paragraph, counters, counters, log_state)
            extracted.append(
                ExtractedParagraph(
                    paragraph=build_paragraph(paragraph),
                    annotations=tuple(resolve_paragraph_annotations(paragraph, parts, log_state)),
                    source=source,
                    section=section,
                    numbering=label,
                    style_id=paragraph_style_id(paragraph),
                )
            )
        return extracted

    def _wanted(self, paragraph: etree._Element) -> bool:
        return is_interesting(paragraph, self.criteria) and has_text_content(paragraph)


def _ends_section(paragraph: etree._Element) -> bool:
    return paragraph.find("w:pPr/w:sectPr", namespaces=NS) is not None


def _count_page_breaks(paragraph: etree._Element) -> int:
    return sum(1 for _ in paragraph.iter(w_tag("lastRenderedPageBreak")))


def section_properties(
    body: etree._Element,
    paragraphs: Iterable[etree._Element] | None = None,
) -> list[etree._Element | None]:
    if paragraphs is None:
        paragraphs = body.iter(w_tag("p"))
    sect_prs: list[etree._Element | None] = [
        paragraph.find("w:pPr/w:sectPr", namespaces=NS)
        for paragraph in paragraphs
        if _ends_section(paragraph)
    ]
    sect_prs.append(body.find("w:sectPr", namespaces=NS))
    return sect_prs


@dataclass(frozen=True)
class DocumentFailure:
    name: str
    error: str


@dataclass
class BatchResult:
    names: list[str]
    extracted: list[list[ExtractedParagraph] | None]
    failures: list[DocumentFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> list[tuple[str, list[ExtractedParagraph]]]:
        return [
            (name, paragraphs)
            for name, paragraphs in zip(self.names, self.extracted)
            if paragraphs is not None
        ]


def extract_from_bytes(
    data: bytes,
    name: str,
    criteria: Criteria,
    log_state: ExtractionLogState | None = None,
) -> list[ExtractedParagraph]:
    started = perf_counter()
    try:
        package = DocumentPackage.from_bytes(data, name, log_state)
        return ParagraphExtractor(criteria).extract(package, log_state)
    except ValueError as exc:
        if log_state is not None:
            log_state.error = str(exc)
        raise
    finally:
        if log_state is not None:
            log_state.elapsed_sec = perf_counter() - started


async def extract_document(
    data: bytes,
    name: str,
    criteria: Criteria,
    log_state: ExtractionLogState | None = None,
) -> list[ExtractedParagraph]:
    return extract_from_bytes(data, name, criteria, log_state)


async def extract_batch(
    documents: list[tuple[bytes, str]],
    criteria: Criteria,
    batch_log: BatchLogState | None = None,
) -> BatchResult:
    names = [name for _, name in documents]
    log_states = [
        batch_log.document(name) if batch_log is not None else None
        for name in names
    ]
    outcomes = await asyncio.gather(
        *(
            extract_document(data, name, criteria, log_state)
            for (data, name), log_state in zip(documents, log_states)
        ),
        return_exceptions=True,
    )
    extracted: list[list[ExtractedParagraph] | None] = []
    failures: list[DocumentFailure] = []
    for name, outcome in zip(names, outcomes):
        if isinstance(outcome, ValueError):
            failures.append(DocumentFailure(name=name, error=str(outcome)))
            extracted.append(None)
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            extracted.append(outcome)
    return BatchResult(names=names, extracted=extracted, failures=failures)


def run_batch(
    documents: list[tuple[bytes, str]],
    criteria: Criteria,
    batch_log: BatchLogState | None = None,
) -> BatchResult:
    return asyncio.run(extract_batch(documents, criteria, batch_log))
