from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from lxml import etree

from .extraction_log import ExtractionLogState, warn
from .ooxml import NS, W14_NS, attr, local_name, w_tag
from .package_reader import (
    COMMENTS_EXTENDED_PART,
    COMMENTS_PART,
    ENDNOTES_PART,
    FOOTNOTES_PART,
    DocumentPackage,
)
from .paragraph_builder import (
    ITALIC,
    AnnotationKind,
    RenderedParagraph,
    build_paragraph,
)

RESOLVED_MARK = "✓"
REPLY_INDENT = 1
MONTH_ABBREVIATIONS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)

_PART_NAMES = {
    AnnotationKind.COMMENT: COMMENTS_PART,
    AnnotationKind.FOOTNOTE: FOOTNOTES_PART,
    AnnotationKind.ENDNOTE: ENDNOTES_PART,
}


@dataclass(frozen=True)
class ExtendedComment:
    para_id: str
    parent_para_id: str | None = None
    done: bool | None = None

    @property
    def is_reply(self) -> bool:
        return self.parent_para_id is not None


def parse_extended_comments(root: etree._Element | None) -> dict[str, ExtendedComment]:
    extended: dict[str, ExtendedComment] = {}
    if root is None:
        return extended
    for elem in root.iter():
        if local_name(elem) != "commentEx":
            continue
        values = {etree.QName(key).localname: value for key, value in elem.attrib.items()}
        para_id = values.get("paraId")
        if not para_id:
            continue
        done_attr = values.get("done")
        extended[para_id] = ExtendedComment(
            para_id=para_id,
            parent_para_id=values.get("paraIdParent") or None,
            done=None if done_attr is None else done_attr == "1",
        )
    return extended


def format_comment_date(value: str) -> str:
    if not value:
        return ""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return value
    return f"{MONTH_ABBREVIATIONS[parsed.month - 1]} {parsed.day}, {parsed.year}"


def collect_reference_ids(paragraph: etree._Element, kind: AnnotationKind) -> list[str]:
    ids = []
    for reference in paragraph.iter(kind.reference_tag):
        annotation_id = attr(reference, "id")
        if annotation_id:
            ids.append(annotation_id)
    return ids


def identification_text(
    kind: AnnotationKind,
    annotation_id: str,
    element: etree._Element,
    extended: ExtendedComment | None = None,
) -> str:
    text = f"{kind.title} {annotation_id}"
    if kind is AnnotationKind.COMMENT:
        commenter = attr(element, "initials") or attr(element, "author") or ""
        written = format_comment_date(attr(element, "date") or "")
        details = ", ".join(part for part in (commenter, written) if part)
        if details:
            text += f" ({details})"
        if extended is not None and extended.done:
            text += f" {RESOLVED_MARK}"
    return text + ": "


def _comment_para_id(element: etree._Element) -> str | None:
    paragraphs = element.findall(".//w:p", namespaces=NS)
    if not paragraphs:
        return None
    return attr(paragraphs[-1], "paraId", ns=W14_NS)


def resolve_annotations(
    ids: list[str],
    part_root: etree._Element | None,
    kind: AnnotationKind,
    extended: dict[str, ExtendedComment] | None = None,
    log_state: ExtractionLogState | None = None,
) -> list[RenderedParagraph | None]:
    if part_root is None or not ids:
        return []
    by_id = {
        attr(element, "id"): element
        for element in part_root.findall(f"w:{kind.value}", namespaces=NS)
    }
    rendered: list[RenderedParagraph | None] = []
    for annotation_id in ids:
        element = by_id.get(annotation_id)
        paragraphs = [] if element is None else list(element.iter(w_tag("p")))
        if not paragraphs:
            warn(log_state, rule="annotation", reason=f"{kind.value} {annotation_id} not resolved")
            rendered.append(None)
            continue
        thread_info = None
        if kind is AnnotationKind.COMMENT and extended:
            thread_info = extended.get(_comment_para_id(element) or "")
        indent = REPLY_INDENT if thread_info is not None and thread_info.is_reply else 0
        rendered.append(
            RenderedParagraph.plain(
                identification_text(kind, annotation_id, element, thread_info),
                ITALIC,
                indent_level=indent,
            )
        )
        rendered.extend(build_paragraph(paragraph, indent_level=indent) for paragraph in paragraphs)
    return rendered


@dataclass
class AnnotationParts:
    comments: etree._Element | None = None
    footnotes: etree._Element | None = None
    endnotes: etree._Element | None = None
    extended: dict[str, ExtendedComment] = field(default_factory=dict)

    @classmethod
    def from_package(cls, package: DocumentPackage) -> "AnnotationParts":
        return cls(
            comments=package.get_part(_PART_NAMES[AnnotationKind.COMMENT]),
            footnotes=package.get_part(_PART_NAMES[AnnotationKind.FOOTNOTE]),
            endnotes=package.get_part(_PART_NAMES[AnnotationKind.ENDNOTE]),
            extended=parse_extended_comments(package.get_part(COMMENTS_EXTENDED_PART)),
        )

    def part_for(self, kind: AnnotationKind) -> etree._Element | None:
        if kind is AnnotationKind.COMMENT:
            return self.comments
        if kind is AnnotationKind.FOOTNOTE:
            return self.footnotes
        return self.endnotes


def resolve_paragraph_annotations(
    paragraph: etree._Element,
    parts: AnnotationParts,
    log_state: ExtractionLogState | None = None,
) -> list[RenderedParagraph | None]:
    bodies: list[RenderedParagraph | None] = []
    for kind in (AnnotationKind.COMMENT, AnnotationKind.FOOTNOTE, AnnotationKind.ENDNOTE):
        ids = collect_reference_ids(paragraph, kind)
        bodies.extend(
            resolve_annotations(ids, parts.part_for(kind), kind, parts.extended, log_state)
        )
    return bodies
