from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from lxml import etree

from . import config
from .extraction_log import ExtractionLogState, warn
from .ooxml import NS, attr, local_name, paragraph_style_id, parse_int
from .style_reader import StyleRecord, resolve_style_numbering


class NumberFormat(str, Enum):
    DECIMAL = "decimal"
    DECIMAL_ZERO = "decimalZero"
    LOWER_LETTER = "lowerLetter"
    UPPER_LETTER = "upperLetter"
    LOWER_ROMAN = "lowerRoman"
    UPPER_ROMAN = "upperRoman"
    BULLET = "bullet"
    ORDINAL = "ordinal"
    CARDINAL_TEXT = "cardinalText"
    ORDINAL_TEXT = "ordinalText"
    NUMBER_IN_DASH = "numberInDash"


BULLET_GLYPH = "•"


@dataclass(frozen=True)
class NumberingFormatSpec:
    num_format: str = NumberFormat.DECIMAL.value
    level_text: str = ""


DEFAULT_FORMAT_SPEC = NumberingFormatSpec()

ListToAbstract = dict[str, str]
AbstractToFormats = dict[str, list[NumberingFormatSpec]]


def to_lower_letter(n: int) -> str:
    letters = ""
    while n > 0:
        n, remainder = divmod(n - 1, 26)
        letters = chr(ord("a") + remainder) + letters
    return letters


def to_upper_letter(n: int) -> str:
    return to_lower_letter(n).upper()


_ROMAN_VALUES = [
    (1000, "m"),
    (900, "cm"),
    (500, "d"),
    (400, "cd"),
    (100, "c"),
    (90, "xc"),
    (50, "l"),
    (40, "xl"),
    (10, "x"),
    (9, "ix"),
    (5, "v"),
    (4, "iv"),
    (1, "i"),
]


def to_lower_roman(n: int) -> str:
    result = []
    for value, symbol in _ROMAN_VALUES:
        while n >= value:
            result.append(symbol)
            n -= value
    return "".join(result)


def to_upper_roman(n: int) -> str:
    return to_lower_roman(n).upper()


def to_ordinal(n: int) -> str:
    suffixes = ["th", "st", "nd", "rd"]
    value = n % 100
    tail = (value - 20) % 10
    if value >= 20 and tail < len(suffixes) and tail > 0:
        return f"{n}{suffixes[tail]}"
    if 0 < value < len(suffixes):
        return f"{n}{suffixes[value]}"
    return f"{n}th"


_ONES = ["", "one", "two", "three", "four", "five", "six", "seven", "eight", "nine"]
_TEENS = [
    "ten",
    "eleven",
    "twelve",
    "thirteen",
    "fourteen",
    "fifteen",
    "sixteen",
    "seventeen",
    "eighteen",
    "nineteen",
]
_TENS = ["", "", "twenty", "thirty", "forty", "fifty", "sixty", "seventy", "eighty", "ninety"]
_ORDINAL_WORDS = [
    "",
    "first",
    "second",
    "third",
    "fourth",
    "fifth",
    "sixth",
    "seventh",
    "eighth",
    "ninth",
    "tenth",
    "eleventh",
    "twelfth",
    "thirteenth",
    "fourteenth",
    "fifteenth",
    "sixteenth",
    "seventeenth",
    "eighteenth",
    "nineteenth",
    "twentieth",
]
_ORDINAL_ENDINGS = [
    ("twelve", "twelfth"),
    ("one", "first"),
    ("two", "second"),
    ("three", "third"),
    ("five", "fifth"),
    ("eight", "eighth"),
    ("nine", "ninth"),
]


def to_cardinal_text(n: int) -> str:
    if n == 0:
        return "zero"
    if n < 0:
        return "negative " + to_cardinal_text(-n)
    if n >= 1000:
        return str(n)
    words = []
    if n >= 100:
        words.append(f"{_ONES[n // 100]} hundred")
        n %= 100
    if n >= 20:
        tens = _TENS[n // 10]
        if n % 10:
            tens = f"{tens}-{_ONES[n % 10]}"
        words.append(tens)
    elif n >= 10:
        words.append(_TEENS[n - 10])
    elif n > 0:
        words.append(_ONES[n])
    return " ".join(words)


def to_ordinal_text(n: int) -> str:
    if 0 < n <= 20:
        return _ORDINAL_WORDS[n]
    cardinal = to_cardinal_text(n)
    for ending, replacement in _ORDINAL_ENDINGS:
        if cardinal.endswith(ending):
            return cardinal[: -len(ending)] + replacement
    if cardinal.endswith("y"):
        return cardinal[:-1] + "ieth"
    return cardinal + "th"


def to_number_in_dash(n: int) -> str:
    return f"- {n} -"


_FORMATTERS = {
    NumberFormat.DECIMAL: str,
    NumberFormat.DECIMAL_ZERO: lambda n: f"{n:02d}",
    NumberFormat.LOWER_LETTER: to_lower_letter,
    NumberFormat.UPPER_LETTER: to_upper_letter,
    NumberFormat.LOWER_ROMAN: to_lower_roman,
    NumberFormat.UPPER_ROMAN: to_upper_roman,
    NumberFormat.BULLET: lambda n: BULLET_GLYPH,
    NumberFormat.ORDINAL: to_ordinal,
    NumberFormat.CARDINAL_TEXT: to_cardinal_text,
    NumberFormat.ORDINAL_TEXT: to_ordinal_text,
    NumberFormat.NUMBER_IN_DASH: to_number_in_dash,
}


def format_level_number(n: int, num_format: str | NumberFormat | None) -> str:
    try:
        kind = NumberFormat(num_format)
    except ValueError:
        kind = NumberFormat.DECIMAL
    return _FORMATTERS[kind](n)


def apply_level_text(template: str, formatted: list[str]) -> str:
    if not template:
        return ".".join(formatted)
    result = template
    for index, value in enumerate(formatted):
        result = result.replace(f"%{index + 1}", value)
    return result


def build_numbering_maps(
    numbering_root: etree._Element | None,
) -> tuple[ListToAbstract, AbstractToFormats]:
    list_to_abstract: ListToAbstract = {}
    abstract_to_formats: AbstractToFormats = {}
    if numbering_root is None:
        return list_to_abstract, abstract_to_formats
    for num in numbering_root.findall("w:num", namespaces=NS):
        num_id = attr(num, "numId")
        abstract_id = attr(num.find("w:abstractNumId", namespaces=NS), "val")
        if num_id and abstract_id:
            list_to_abstract[num_id] = abstract_id
    for abstract in numbering_root.findall("w:abstractNum", namespaces=NS):
        abstract_id = attr(abstract, "abstractNumId")
        if not abstract_id:
            continue
        abstract_to_formats[abstract_id] = _parse_levels(abstract)
    return list_to_abstract, abstract_to_formats


def _parse_levels(abstract: etree._Element) -> list[NumberingFormatSpec]:
    by_level: dict[int, NumberingFormatSpec] = {}
    for position, lvl in enumerate(abstract.findall("w:lvl", namespaces=NS)):
        level = parse_int(attr(lvl, "ilvl"))
        if level is None or level < 0:
            level = position
        num_format = attr(lvl.find("w:numFmt", namespaces=NS), "val") or NumberFormat.DECIMAL.value
        level_text = attr(lvl.find("w:lvlText", namespaces=NS), "val") or ""
        by_level[level] = NumberingFormatSpec(num_format=num_format, level_text=level_text)
    if not by_level:
        return []
    return [by_level.get(level, DEFAULT_FORMAT_SPEC) for level in range(max(by_level) + 1)]


def update_counters(counters: list[int], level: int) -> list[int]:
    counters[level] += 1
    for index in range(level + 1, len(counters)):
        counters[index] = 0
    return counters


@dataclass
class CounterState:
    levels: list[int] = field(default_factory=lambda: [0] * config.MAX_NUMBERING_LEVELS)

    @classmethod
    def fresh(cls, depth: int = config.MAX_NUMBERING_LEVELS) -> "CounterState":
        return cls(levels=[0] * depth)

    @property
    def depth(self) -> int:
        return len(self.levels)

    def advance(self, level: int) -> list[int]:
        return update_counters(self.levels, level)


def _format_label(
    level: int,
    formats: list[NumberingFormatSpec],
    counters: CounterState,
) -> str:
    values = counters.advance(level)[: level + 1]
    formatted = [
        format_level_number(value, _spec_at(formats, index).num_format)
        for index, value in enumerate(values)
    ]
    return apply_level_text(_spec_at(formats, level).level_text, formatted)


def _spec_at(formats: list[NumberingFormatSpec], level: int) -> NumberingFormatSpec:
    if level < len(formats):
        return formats[level]
    return DEFAULT_FORMAT_SPEC


def _resolve_label(
    list_id: str | None,
    raw_level: str | None,
    list_to_abstract: ListToAbstract,
    abstract_to_formats: AbstractToFormats,
    counters: CounterState,
    log_state: ExtractionLogState | None,
    paragraph_index: int | None,
    style_id: str | None = None,
) -> str | None:
    if not list_id:
        return None
    level = 0 if raw_level is None else parse_int(raw_level)
    if level is None or not 0 <= level < counters.depth:
        warn(
            log_state,
            rule="numbering",
            reason=f"unusable level {raw_level!r} for list {list_id}",
            style_id=style_id,
            paragraph_index=paragraph_index,
        )
        return None
    abstract_id = list_to_abstract.get(list_id)
    if abstract_id is None:
        if list_id != "0":
            warn(
                log_state,
                rule="numbering",
                reason=f"unknown list id {list_id}",
                style_id=style_id,
                paragraph_index=paragraph_index,
            )
        return None
    formats = abstract_to_formats.get(abstract_id)
    if formats is None:
        warn(
            log_state,
            rule="numbering",
            reason=f"list {list_id} points at missing abstract definition {abstract_id}",
            style_id=style_id,
            paragraph_index=paragraph_index,
        )
        return None
    return _format_label(level, formats, counters)


def numbering_removed(paragraph: etree._Element) -> bool:
    num_id = paragraph.find("w:pPr/w:numPr/w:numId", namespaces=NS)
    return attr(num_id, "val") == "0"


def track_numbering(
    paragraph: etree._Element,
    list_to_abstract: ListToAbstract,
    abstract_to_formats: AbstractToFormats,
    counters: CounterState,
    log_state: ExtractionLogState | None = None,
    paragraph_index: int | None = None,
) -> str | None:
    num_pr = paragraph.find("w:pPr/w:numPr", namespaces=NS)
    if num_pr is None:
        return None
    list_id = attr(num_pr.find("w:numId", namespaces=NS), "val")
    raw_level = attr(num_pr.find("w:ilvl", namespaces=NS), "val")
    return _resolve_label(
        list_id,
        raw_level,
        list_to_abstract,
        abstract_to_formats,
        counters,
        log_state,
        paragraph_index,
    )


def track_style_numbering(
    paragraph: etree._Element,
    styles: dict[str, StyleRecord],
    list_to_abstract: ListToAbstract,
    abstract_to_formats: AbstractToFormats,
    counters: CounterState,
    log_state: ExtractionLogState | None = None,
    paragraph_index: int | None = None,
) -> str | None:
    style_id = paragraph_style_id(paragraph)
    if not style_id:
        return None
    numbering = resolve_style_numbering(style_id, styles)
    if numbering is None:
        return None
    return _resolve_label(
        numbering.list_id,
        numbering.level,
        list_to_abstract,
        abstract_to_formats,
        counters,
        log_state,
        paragraph_index,
        style_id=style_id,
    )


_MANUAL_PATTERNS = [
    re.compile(r"^(\d+(?:\.\d+)*\.)\s+"),
    re.compile(r"^([a-z]+\.)\s+"),
    re.compile(r"^([A-Z]+\.)\s+"),
    re.compile(r"^([ivxlcdm]+\.)\s+"),
    re.compile(r"^([IVXLCDM]+\.)\s+"),
    re.compile(r"^(\(\d+(?:\.\d+)*\))\s+"),
    re.compile(r"^(\([a-z]+\))\s+"),
    re.compile(r"^(\([A-Z]+\))\s+"),
    re.compile(r"^(\([ivxlcdm]+\))\s+"),
    re.compile(r"^(\([IVXLCDM]+\))\s+"),
    re.compile(r"^(\d+(?:\.\d+)*)(?:\t|\s{2,})"),
    re.compile(r"^([a-z]{1,2})(?:\t|\s{2,})"),
    re.compile(r"^([A-Z]{1,2})(?:\t|\s{2,})"),
    re.compile(r"^([ivxlcdm]+)(?:\t|\s{2,})"),
    re.compile(r"^([IVXLCDM]+)(?:\t|\s{2,})"),
]

_VALID_TOKEN_PATTERNS = [
    re.compile(r"^\d"),
    re.compile(r"^[a-z]{1,2}\.?$"),
    re.compile(r"^[A-Z]{1,2}\.?$"),
    re.compile(r"^[ivxlcdm]+\.?$"),
    re.compile(r"^[IVXLCDM]+\.?$"),
    re.compile(r"^\(\d"),
    re.compile(r"^\([a-z]{1,2}\)$"),
    re.compile(r"^\([A-Z]{1,2}\)$"),
    re.compile(r"^\([ivxlcdm]+\)$"),
    re.compile(r"^\([IVXLCDM]+\)$"),
]

MANUAL_TOKEN_MAX_LENGTH = 10
MANUAL_CONTENT_MIN_LENGTH = 3


def paragraph_text(paragraph: etree._Element) -> str:
    pieces = []
    for run in paragraph.iter(f"{{{NS['w']}}}r"):
        for child in run:
            name = local_name(child)
            if name in {"t", "delText"}:
                pieces.append(child.text or "")
            elif name == "tab":
                pieces.append("\t")
    return "".join(pieces)


def detect_manual_numbering(text: str) -> str | None:
    if not text or not text.strip():
        return None
    trimmed = text.strip()
    for pattern in _MANUAL_PATTERNS:
        match = pattern.match(trimmed)
        if match and trimmed[match.end():].strip():
            return match.group(1)
    return None


def validate_manual_numbering(token: str, text: str) -> bool:
    if not token or not text:
        return False
    trimmed = text.strip()
    if not trimmed.startswith(token):
        return False
    after = trimmed[len(token):]
    if not (after.startswith("\t") or re.match(r"^\s{2,}", after)):
        return False
    if len(after.lstrip()) < MANUAL_CONTENT_MIN_LENGTH:
        return False
    if len(token) > MANUAL_TOKEN_MAX_LENGTH:
        return False
    return any(pattern.search(token) for pattern in _VALID_TOKEN_PATTERNS)


def manual_numbering_label(paragraph: etree._Element) -> str | None:
    text = paragraph_text(paragraph)
    token = detect_manual_numbering(text)
    if token is None or not validate_manual_numbering(token, text):
        return None
    return token
