from __future__ import annotations

import posixpath
import re
import zlib
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from zipfile import BadZipFile, ZipFile

from lxml import etree

from .extraction_log import ExtractionLogState, warn
from .ooxml import NS, PKG_REL_NS, R_NS, attr

DOCUMENT_PART = "word/document.xml"
STYLES_PART = "word/styles.xml"
NUMBERING_PART = "word/numbering.xml"
COMMENTS_PART = "word/comments.xml"
COMMENTS_EXTENDED_PART = "word/commentsExtended.xml"
FOOTNOTES_PART = "word/footnotes.xml"
ENDNOTES_PART = "word/endnotes.xml"
DOCUMENT_RELS_PART = "word/_rels/document.xml.rels"

REGION_KINDS = ("header", "footer")
_REGION_PART_RE = re.compile(r"^word/(header|footer)(\d+)\.xml$")


class RequiredPartMissingError(ValueError):
    def __init__(self, file_name: str, part_name: str, detail: str | None = None) -> None:
        self.file_name = file_name
        self.part_name = part_name
        message = f"missing required part in docx: {part_name} ({file_name})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class InvalidPackageError(ValueError):
    def __init__(self, file_name: str) -> None:
        self.file_name = file_name
        super().__init__(f"invalid docx file: {file_name}")


@dataclass
class DocumentPackage:
    name: str
    parts: dict[str, bytes]
    log_state: ExtractionLogState | None = None
    _cache: dict[str, etree._Element | None] = field(default_factory=dict, repr=False)
    _relationships: dict[str, str] | None = field(default=None, repr=False)

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        name: str,
        log_state: ExtractionLogState | None = None,
    ) -> "DocumentPackage":
        try:
            with ZipFile(BytesIO(data)) as archive:
                parts = {
                    info.filename: archive.read(info.filename)
                    for info in archive.infolist()
                    if not info.is_dir()
                }
        except (BadZipFile, zlib.error, EOFError, NotImplementedError) as exc:
            raise InvalidPackageError(name) from exc
        return cls(name=name, parts=parts, log_state=log_state)

    @classmethod
    def from_path(
        cls,
        path: str | Path,
        log_state: ExtractionLogState | None = None,
    ) -> "DocumentPackage":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"document not found: {path}")
        if not path.is_file():
            raise IsADirectoryError(f"document path is not a file: {path}")
        return cls.from_bytes(path.read_bytes(), path.name, log_state)

    def has_part(self, part_name: str) -> bool:
        return part_name in self.parts

    def get_part(self, part_name: str) -> etree._Element | None:
        if part_name in self._cache:
            return self._cache[part_name]
        root = None
        if self.has_part(part_name):
            try:
                root = etree.fromstring(self.parts[part_name])
            except etree.XMLSyntaxError as exc:
                warn(self.log_state, rule="part_parse", reason=f"unreadable {part_name} ({exc})")
        self._cache[part_name] = root
        return root

    def require_part(self, part_name: str = DOCUMENT_PART) -> etree._Element:
        if not self.has_part(part_name):
            raise RequiredPartMissingError(self.name, part_name)
        try:
            return etree.fromstring(self.parts[part_name])
        except etree.XMLSyntaxError as exc:
            raise RequiredPartMissingError(self.name, part_name, str(exc)) from exc

    def region_part_names(self, kind: str) -> list[str]:
        if kind not in REGION_KINDS:
            raise ValueError(f"unknown region kind: {kind}")
        found: list[tuple[int, str]] = []
        for part_name in self.parts:
            match = _REGION_PART_RE.match(part_name)
            if match and match.group(1) == kind:
                found.append((int(match.group(2)), part_name))
        return [part_name for _, part_name in sorted(found)]

    def relationships(self) -> dict[str, str]:
        if self._relationships is not None:
            return self._relationships
        rels: dict[str, str] = {}
        root = self.get_part(DOCUMENT_RELS_PART)
        if root is not None:
            for rel in root.findall(f"{{{PKG_REL_NS}}}Relationship"):
                rel_id = rel.get("Id")
                target = rel.get("Target")
                if not rel_id or not target or rel.get("TargetMode") == "External":
                    continue
                rels[rel_id] = _resolve_target(target)
        self._relationships = rels
        return rels

    def section_region_parts(
        self,
        sect_prs: list[etree._Element | None],
        kind: str,
    ) -> list[list[tuple[str, etree._Element]]]:
        reference_tag = f"w:{kind}Reference"
        rels = self.relationships()
        if not rels:
            shared = self._load_parts(self.region_part_names(kind))
            return [list(shared) for _ in sect_prs]
        result: list[list[tuple[str, etree._Element]]] = []
        previous: list[tuple[str, etree._Element]] = []
        for sect_pr in sect_prs:
            references = [] if sect_pr is None else sect_pr.findall(reference_tag, namespaces=NS)
            if not references:
                result.append(list(previous))
                continue
            names: list[str] = []
            for reference in references:
                rel_id = attr(reference, "id", ns=R_NS)
                part_name = rels.get(rel_id or "")
                if part_name is None:
                    warn(
                        self.log_state,
                        rule="region_reference",
                        reason=f"{kind} relationship {rel_id} not found",
                    )
                    continue
                if part_name not in names:
                    names.append(part_name)
            current = self._load_parts(names)
            result.append(current)
            previous = current
        return result

    def _load_parts(self, part_names: list[str]) -> list[tuple[str, etree._Element]]:
        loaded = []
        for part_name in part_names:
            root = self.get_part(part_name)
            if root is not None:
                loaded.append((part_name, root))
        return loaded


def _resolve_target(target: str) -> str:
    if target.startswith("/"):
        return target.lstrip("/")
    return posixpath.normpath(posixpath.join("word", target))
