from __future__ import annotations

from dataclasses import dataclass

from lxml import etree

from .ooxml import NS, attr


@dataclass(frozen=True)
class StyleNumbering:
    list_id: str | None
    level: str | None = None


@dataclass
class StyleRecord:
    style_id: str
    name: str
    based_on: str | None = None
    numbering: StyleNumbering | None = None


def build_style_maps(styles_root: etree._Element | None) -> dict[str, StyleRecord]:
    styles: dict[str, StyleRecord] = {}
    if styles_root is None:
        return styles
    for style in styles_root.findall("w:style", namespaces=NS):
        style_id = attr(style, "styleId")
        if not style_id:
            continue
        name = attr(style.find("w:name", namespaces=NS), "val") or ""
        based_on = attr(style.find("w:basedOn", namespaces=NS), "val") or None
        styles[style_id] = StyleRecord(
            style_id=style_id,
            name=name,
            based_on=based_on,
            numbering=_parse_numbering(style.find("w:pPr/w:numPr", namespaces=NS)),
        )
    return styles


def _parse_numbering(num_pr: etree._Element | None) -> StyleNumbering | None:
    if num_pr is None:
        return None
    list_id = attr(num_pr.find("w:numId", namespaces=NS), "val") or None
    level = attr(num_pr.find("w:ilvl", namespaces=NS), "val") or None
    return StyleNumbering(list_id=list_id, level=level)


def resolve_style_numbering(
    style_id: str,
    styles: dict[str, StyleRecord],
) -> StyleNumbering | None:
    for style in _collect_style_chain(styles, style_id):
        if style.numbering is not None:
            if not style.numbering.list_id:
                return None
            return style.numbering
    return None


def _collect_style_chain(
    styles: dict[str, StyleRecord],
    style_id: str,
) -> list[StyleRecord]:
    visited: set[str] = set()
    chain: list[StyleRecord] = []
    current_id: str | None = style_id
    while current_id is not None:
        if current_id in visited:
            break
        visited.add(current_id)
        current = styles.get(current_id)
        if current is None:
            break
        chain.append(current)
        current_id = current.based_on
    return chain


def find_style_cycles(styles: dict[str, StyleRecord]) -> list[str]:
    cyclic: list[str] = []
    for style_id in styles:
        visited: set[str] = set()
        current_id: str | None = style_id
        while current_id is not None and current_id in styles:
            if current_id in visited:
                cyclic.append(style_id)
                break
            visited.add(current_id)
            current_id = styles[current_id].based_on
    return cyclic
