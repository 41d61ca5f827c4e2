from __future__ import annotations

from dataclasses import dataclass

STYLE_KINDS = {"paragraph", "character"}
UNDERLINES = {"single", "double"}
SHADING_PATTERNS = {"clear", "solid", "pct50"}
REQUIRED_STYLE_IDS = (
    "Normal",
    "FileName",
    "Deletion",
    "Insertion",
    "MoveFrom",
    "MoveTo",
    "CommentAnchor",
    "FootnoteAnchor",
    "EndnoteAnchor",
)


@dataclass
class ReportStyle:
    style_id: str
    kind: str
    based_on: str | None = "Normal"
    font_name: str | None = None
    font_size_pt: float | None = None
    bold: bool | None = None
    color: str | None = None
    strike: bool | None = None
    underline: str | None = None
    shading_pattern: str | None = None
    shading_fill: str | None = None
    space_before_pt: float | None = None
    space_after_pt: float | None = None

    @property
    def name(self) -> str:
        return self.style_id

    def validate(self) -> None:
        _validate_enum("kind", self.kind, STYLE_KINDS)
        _validate_enum("underline", self.underline, UNDERLINES)
        _validate_enum("shading_pattern", self.shading_pattern, SHADING_PATTERNS)
        for name in ("color", "shading_fill"):
            _validate_hex(name, getattr(self, name))
        if self.kind == "character" and (
            self.space_before_pt is not None or self.space_after_pt is not None
        ):
            raise ValueError(f"character style {self.style_id!r} cannot set paragraph spacing")

    def to_dict(self) -> dict[str, object | None]:
        return {
            "style_id": self.style_id,
            "kind": self.kind,
            "based_on": self.based_on,
            "font_name": self.font_name,
            "font_size_pt": self.font_size_pt,
            "bold": self.bold,
            "color": self.color,
            "strike": self.strike,
            "underline": self.underline,
            "shading_pattern": self.shading_pattern,
            "shading_fill": self.shading_fill,
            "space_before_pt": self.space_before_pt,
            "space_after_pt": self.space_after_pt,
        }


def build_report_styles() -> dict[str, ReportStyle]:
    styles = [
        ReportStyle("Normal", "paragraph", based_on=None, font_name="Calibri", font_size_pt=12.0),
        ReportStyle("FileName", "paragraph", bold=True, space_before_pt=8.0, space_after_pt=6.0),
        ReportStyle("Deletion", "character", color="FF0000", strike=True),
        ReportStyle("Insertion", "character", color="0000FF", underline="single"),
        ReportStyle("MoveFrom", "character", color="006400", strike=True),
        ReportStyle("MoveTo", "character", color="006400", underline="double"),
        ReportStyle("CommentAnchor", "character", shading_pattern="pct50", shading_fill="C0C0C0"),
        ReportStyle("FootnoteAnchor", "character", shading_pattern="pct50", shading_fill="ADD8E6"),
        ReportStyle("EndnoteAnchor", "character", shading_pattern="pct50", shading_fill="90EE90"),
    ]
    result: dict[str, ReportStyle] = {}
    for style in styles:
        style.validate()
        result[style.style_id] = style
    return result


def check_report_styles(styles: dict[str, ReportStyle]) -> None:
    missing = [style_id for style_id in REQUIRED_STYLE_IDS if style_id not in styles]
    if missing:
        raise ValueError(f"report styles missing: {', '.join(missing)}")
    for style in styles.values():
        style.validate()


def _validate_enum(name: str, value: str | None, allowed: set[str]) -> None:
    if value is None:
        return
    if value not in allowed:
        allowed_list = ", ".join(sorted(allowed))
        raise ValueError(f"{name} must be one of {allowed_list}, got {value!r}")


def _validate_hex(name: str, value: str | None) -> None:
    if value is None:
        return
    if len(value) != 6 or any(ch not in "0123456789ABCDEFabcdef" for ch in value):
        raise ValueError(f"{name} must be a 6 digit hex color, got {value!r}")
