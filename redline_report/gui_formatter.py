from __future__ import annotations

from pathlib import Path

from .extractor import BatchResult, ParagraphSource

CRITERIA_LABELS = {
    "redline": "修订标记",
    "highlight": "高亮",
    "square_brackets": "方括号",
    "comments": "批注",
    "footnotes": "脚注",
    "endnotes": "尾注",
}

SOURCE_LABELS = {
    ParagraphSource.DOCUMENT: "正文",
    ParagraphSource.HEADER: "页眉",
    ParagraphSource.FOOTER: "页脚",
}


def format_criteria(criteria: dict[str, bool]) -> str:
    enabled = [label for key, label in CRITERIA_LABELS.items() if criteria.get(key)]
    if not enabled:
        return "未选择任何提取条件"
    return "、".join(enabled)


def format_batch_summary(
    batch: object,
    output_path: str | Path | None = None,
    log_path: str | Path | None = None,
) -> str:
    if not isinstance(batch, BatchResult):
        return "提取结果格式异常"
    lines: list[str] = []
    total = sum(len(paragraphs) for _, paragraphs in batch.succeeded)
    for name, paragraphs in zip(batch.names, batch.extracted):
        lines.append(f"【{name}】")
        if paragraphs is None:
            lines.append("  提取失败")
            continue
        counts = {source: 0 for source in SOURCE_LABELS}
        annotated = 0
        for paragraph in paragraphs:
            counts[paragraph.source] += 1
            if paragraph.has_annotations:
                annotated += 1
        lines.append(f"  段落数：{len(paragraphs)}")
        detail = "，".join(
            f"{SOURCE_LABELS[source]} {count}" for source, count in counts.items() if count
        )
        if detail:
            lines.append(f"  来源：{detail}")
        if annotated:
            lines.append(f"  含批注/脚注/尾注：{annotated}")
        for paragraph in paragraphs[:3]:
            preview = paragraph.paragraph.text.strip().replace("\n", " ")
            if len(preview) > 40:
                preview = preview[:40] + "…"
            lines.append(f"  - {paragraph.location_label}：{preview}")
        if len(paragraphs) > 3:
            lines.append(f"  - …… 另有 {len(paragraphs) - 3} 段")
    if batch.failures:
        lines.append("【失败文件】")
        for failure in batch.failures:
            lines.append(f"  {failure.name}：{failure.error}")
    lines.append(f"合计提取段落：{total}")
    if output_path:
        lines.append(f"报告文件：{output_path}")
    if log_path:
        lines.append(f"日志文件：{log_path}")
    return "\n".join(lines)
