from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from . import config


@dataclass
class WarningEntry:
    rule: str
    reason: str
    style_id: str | None = None
    paragraph_index: int | None = None


@dataclass
class ExtractionLogState:
    file_name: str
    warnings: list[WarningEntry] = field(default_factory=list)
    paragraph_count: int = 0
    extracted_count: int = 0
    error: str | None = None
    elapsed_sec: float | None = None


@dataclass
class BatchLogState:
    start_time: datetime
    documents: list[ExtractionLogState] = field(default_factory=list)
    criteria: dict[str, bool] = field(default_factory=dict)
    output_path: Path | None = None
    elapsed_sec: float | None = None

    def document(self, file_name: str) -> ExtractionLogState:
        state = ExtractionLogState(file_name=file_name)
        self.documents.append(state)
        return state

    @property
    def warning_count(self) -> int:
        return sum(len(doc.warnings) for doc in self.documents)

    @property
    def failed(self) -> list[ExtractionLogState]:
        return [doc for doc in self.documents if doc.error]


def warn(
    log_state: ExtractionLogState | None,
    rule: str,
    reason: str,
    style_id: str | None = None,
    paragraph_index: int | None = None,
) -> None:
    if log_state is None:
        return
    log_state.warnings.append(
        WarningEntry(
            rule=rule,
            reason=reason,
            style_id=style_id,
            paragraph_index=paragraph_index,
        )
    )


def format_log_lines(batch_state: BatchLogState) -> list[str]:
    lines = [
        f"start_time: {batch_state.start_time.isoformat(timespec='seconds')}",
        f"elapsed_sec: {batch_state.elapsed_sec:.3f}"
        if batch_state.elapsed_sec is not None
        else "elapsed_sec: unknown",
        f"documents_count: {len(batch_state.documents)}",
        f"failed_count: {len(batch_state.failed)}",
        f"warnings_total: {batch_state.warning_count}",
    ]
    if batch_state.criteria:
        enabled = [name for name, value in batch_state.criteria.items() if value]
        lines.append(f"criteria: {', '.join(enabled) or 'none'}")
    if batch_state.output_path is not None:
        lines.append(f"output_path: {batch_state.output_path}")
    for doc in batch_state.documents:
        lines.append(f"document: {doc.file_name}")
        lines.append(f"  paragraphs: {doc.paragraph_count}")
        lines.append(f"  extracted: {doc.extracted_count}")
        if doc.elapsed_sec is not None:
            lines.append(f"  elapsed_sec: {doc.elapsed_sec:.3f}")
        if doc.error:
            lines.append(f"  error: {doc.error}")
        lines.append(f"  warnings_count: {len(doc.warnings)}")
        for warning in doc.warnings:
            parts = [f"rule={warning.rule}", f"reason={warning.reason}"]
            if warning.style_id:
                parts.append(f"style_id={warning.style_id}")
            if warning.paragraph_index is not None:
                parts.append(f"paragraph_index={warning.paragraph_index}")
            lines.append("  warning: " + " ".join(parts))
    return lines


def write_log(batch_state: BatchLogState) -> Path:
    config.ensure_base_dirs()
    log_path = config.build_log_path(batch_state.start_time)
    lines = format_log_lines(batch_state)
    log_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return log_path
