from __future__ import annotations

from lxml import etree

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
W14_NS = "http://schemas.microsoft.com/office/word/2010/wordml"
W15_NS = "http://schemas.microsoft.com/office/word/2012/wordml"
R_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PKG_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
NS = {"w": W_NS, "w14": W14_NS, "w15": W15_NS, "r": R_NS}


def w_tag(name: str) -> str:
    return f"{{{W_NS}}}{name}"


def attr(elem: etree._Element | None, name: str, ns: str = W_NS) -> str | None:
    if elem is None:
        return None
    return elem.get(f"{{{ns}}}{name}")


def local_name(elem: etree._Element) -> str:
    tag = elem.tag
    if not isinstance(tag, str):
        return ""
    return etree.QName(tag).localname


def parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def paragraph_style_id(paragraph: etree._Element) -> str | None:
    return attr(paragraph.find("w:pPr/w:pStyle", namespaces=NS), "val")


def has_descendant(elem: etree._Element, name: str) -> bool:
    return next(elem.iter(w_tag(name)), None) is not None
