from __future__ import annotations

from dataclasses import asdict, dataclass, fields

from lxml import etree

from . import config
from .ooxml import has_descendant, w_tag

REDLINE_TAGS = ("del", "ins", "moveFrom", "moveTo")


@dataclass(frozen=True)
class Criteria:
    redline: bool = False
    highlight: bool = False
    square_brackets: bool = False
    comments: bool = False
    footnotes: bool = False
    endnotes: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, object] | None) -> "Criteria":
        names = {item.name for item in fields(cls)}
        values = dict(config.DEFAULT_CRITERIA)
        if data:
            unknown = sorted(set(data) - names)
            if unknown:
                raise ValueError(f"unknown criteria: {', '.join(unknown)}")
            values.update(data)
        return cls(**{name: bool(values.get(name, False)) for name in names})

    def to_dict(self) -> dict[str, bool]:
        return asdict(self)

    def any_enabled(self) -> bool:
        return any(self.to_dict().values())


@dataclass(frozen=True)
class ParagraphSignals:
    redline: bool
    highlight: bool
    square_brackets: bool
    comments: bool
    footnotes: bool
    endnotes: bool

    def matches(self, criteria: Criteria) -> bool:
        return any(
            getattr(criteria, name) and getattr(self, name)
            for name in criteria.to_dict()
        )


def paragraph_signals(paragraph: etree._Element) -> ParagraphSignals:
    return ParagraphSignals(
        redline=any(has_descendant(paragraph, tag) for tag in REDLINE_TAGS),
        highlight=has_descendant(paragraph, "highlight"),
        square_brackets=_has_square_brackets(paragraph),
        comments=has_descendant(paragraph, "commentRangeStart"),
        footnotes=has_descendant(paragraph, "footnoteReference"),
        endnotes=has_descendant(paragraph, "endnoteReference"),
    )


def _has_square_brackets(paragraph: etree._Element) -> bool:
    for run in paragraph.iter(w_tag("r")):
        for text in run.iter(w_tag("t")):
            value = text.text or ""
            if "[" in value or "]" in value:
                return True
    return False


def is_interesting(paragraph: etree._Element, criteria: Criteria) -> bool:
    if not criteria.any_enabled():
        return False
    return paragraph_signals(paragraph).matches(criteria)


def has_text_content(paragraph: etree._Element) -> bool:
    for run in paragraph.iter(w_tag("r")):
        for node in run.iter(w_tag("t"), w_tag("delText")):
            if (node.text or "").strip():
                return True
    return False
