from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from lxml import etree

from .ooxml import NS, attr, w_tag


class ChangeStyle(str, Enum):
    DELETION = "Deletion"
    INSERTION = "Insertion"
    MOVE_FROM = "MoveFrom"
    MOVE_TO = "MoveTo"


class AnnotationKind(str, Enum):
    COMMENT = "comment"
    FOOTNOTE = "footnote"
    ENDNOTE = "endnote"

    @property
    def abbreviation(self) -> str:
        return _ANNOTATION_ABBREVIATIONS[self]

    @property
    def title(self) -> str:
        return self.value.capitalize()

    @property
    def anchor_style(self) -> str:
        return f"{self.title}Anchor"

    @property
    def reference_tag(self) -> str:
        return w_tag(f"{self.value}Reference")

    def anchor_label(self, annotation_id: str | None) -> str:
        if annotation_id:
            return f"[{self.abbreviation} {annotation_id}]"
        return f"[{self.abbreviation}]"


_ANNOTATION_ABBREVIATIONS = {
    AnnotationKind.COMMENT: "Cmt",
    AnnotationKind.FOOTNOTE: "Fn",
    AnnotationKind.ENDNOTE: "En",
}


@dataclass(frozen=True)
class LineBreak:
    pass


LINE_BREAK = LineBreak()

NON_BREAKING_HYPHEN = "‑"
SOFT_HYPHEN = "­"


@dataclass(frozen=True)
class RunFormat:
    bold: bool = False
    italic: bool = False
    all_caps: bool = False
    small_caps: bool = False
    strike: bool = False
    double_strike: bool = False
    highlight: str | None = None
    underline: str | None = None
    superscript: bool = False
    subscript: bool = False


PLAIN = RunFormat()
ITALIC = RunFormat(italic=True)


@dataclass(frozen=True)
class TextSegment:
    pieces: tuple[str | LineBreak, ...]
    format: RunFormat = PLAIN
    change_style: ChangeStyle | None = None
    anchor: AnnotationKind | None = None

    @property
    def text(self) -> str:
        return "".join("\n" if isinstance(piece, LineBreak) else piece for piece in self.pieces)

    @property
    def character_style(self) -> str | None:
        if self.anchor is not None:
            return self.anchor.anchor_style
        if self.change_style is not None:
            return self.change_style.value
        return None


@dataclass(frozen=True)
class RenderedParagraph:
    segments: tuple[TextSegment, ...] = field(default_factory=tuple)
    indent_level: int = 0

    @property
    def text(self) -> str:
        return "".join(segment.text for segment in self.segments)

    @classmethod
    def plain(cls, text: str, run_format: RunFormat = PLAIN, indent_level: int = 0) -> "RenderedParagraph":
        return cls(segments=(TextSegment((text,), run_format),), indent_level=indent_level)


def build_run_format(r_pr: etree._Element | None) -> RunFormat:
    if r_pr is None:
        return PLAIN
    vert_align = attr(r_pr.find("w:vertAlign", namespaces=NS), "val")
    highlight = attr(r_pr.find("w:highlight", namespaces=NS), "val")
    underline = attr(r_pr.find("w:u", namespaces=NS), "val")
    return RunFormat(
        bold=_flag(r_pr, "b"),
        italic=_flag(r_pr, "i"),
        all_caps=_flag(r_pr, "caps"),
        small_caps=_flag(r_pr, "smallCaps"),
        strike=_flag(r_pr, "strike"),
        double_strike=_flag(r_pr, "dstrike"),
        highlight=None if highlight in (None, "", "none") else highlight,
        underline=None if underline in (None, "", "none") else underline,
        superscript=vert_align == "superscript",
        subscript=vert_align == "subscript",
    )


def _flag(r_pr: etree._Element, name: str) -> bool:
    elem = r_pr.find(f"w:{name}", namespaces=NS)
    if elem is None:
        return False
    val = attr(elem, "val")
    if val is None:
        return True
    return val.lower() not in {"0", "false", "off"}


_INLINE_CHARACTERS = {
    w_tag("noBreakHyphen"): NON_BREAKING_HYPHEN,
    w_tag("softHyphen"): SOFT_HYPHEN,
    w_tag("cr"): "\r",
    w_tag("tab"): "\t",
}
_TEXT_TAGS = {w_tag("t"), w_tag("delText")}
_REFERENCE_KINDS = {kind.reference_tag: kind for kind in AnnotationKind}


def build_text_segments(
    run: etree._Element,
    change_style: ChangeStyle | None = None,
) -> list[TextSegment]:
    run_format = build_run_format(run.find("w:rPr", namespaces=NS))
    segments: list[TextSegment] = []
    pieces: list[str | LineBreak] = []

    def flush() -> None:
        if pieces:
            segments.append(TextSegment(_merge_pieces(pieces), run_format, change_style))
            pieces.clear()

    for child in run:
        tag = child.tag
        if tag in _TEXT_TAGS:
            if child.text:
                pieces.append(child.text)
        elif tag in _INLINE_CHARACTERS:
            pieces.append(_INLINE_CHARACTERS[tag])
        elif tag == w_tag("br"):
            pieces.append(LINE_BREAK)
        elif tag in _REFERENCE_KINDS:
            flush()
            kind = _REFERENCE_KINDS[tag]
            label = kind.anchor_label(attr(child, "id"))
            segments.append(TextSegment((label,), run_format, change_style, anchor=kind))
    flush()
    return segments


def _merge_pieces(pieces: list[str | LineBreak]) -> tuple[str | LineBreak, ...]:
    merged: list[str | LineBreak] = []
    for piece in pieces:
        if isinstance(piece, str) and merged and isinstance(merged[-1], str):
            merged[-1] += piece
        else:
            merged.append(piece)
    return tuple(merged)


Renderer = Callable[[etree._Element, ChangeStyle | None], list[TextSegment]]


def _render_run(elem: etree._Element, change_style: ChangeStyle | None) -> list[TextSegment]:
    return build_text_segments(elem, change_style)


def _tracked_change(style: ChangeStyle) -> Renderer:
    def render(elem: etree._Element, _outer: ChangeStyle | None) -> list[TextSegment]:
        segments: list[TextSegment] = []
        for run in elem.iter(w_tag("r")):
            segments.extend(build_text_segments(run, style))
        return segments

    return render


def _render_container(elem: etree._Element, change_style: ChangeStyle | None) -> list[TextSegment]:
    return render_children(elem, change_style)


def _render_content_control(elem: etree._Element, change_style: ChangeStyle | None) -> list[TextSegment]:
    content = elem.find("w:sdtContent", namespaces=NS)
    if content is None:
        return []
    return render_children(content, change_style)


def _ignore(elem: etree._Element, change_style: ChangeStyle | None) -> list[TextSegment]:
    return []


CHILD_RENDERERS: dict[str, Renderer] = {
    w_tag("r"): _render_run,
    w_tag("del"): _tracked_change(ChangeStyle.DELETION),
    w_tag("ins"): _tracked_change(ChangeStyle.INSERTION),
    w_tag("moveFrom"): _tracked_change(ChangeStyle.MOVE_FROM),
    w_tag("moveTo"): _tracked_change(ChangeStyle.MOVE_TO),
    w_tag("hyperlink"): _render_container,
    w_tag("smartTag"): _render_container,
    w_tag("fldSimple"): _render_container,
    w_tag("sdt"): _render_content_control,
}


def render_children(
    elem: etree._Element,
    change_style: ChangeStyle | None = None,
) -> list[TextSegment]:
    segments: list[TextSegment] = []
    for child in elem:
        renderer = CHILD_RENDERERS.get(child.tag, _ignore) if isinstance(child.tag, str) else _ignore
        segments.extend(renderer(child, change_style))
    return segments


def build_paragraph(paragraph: etree._Element, indent_level: int = 0) -> RenderedParagraph:
    return RenderedParagraph(
        segments=tuple(render_children(paragraph)),
        indent_level=indent_level,
    )

