from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path
from time import perf_counter
from typing import Sequence

from . import config
from .classifier import Criteria
from .extraction_log import BatchLogState, write_log
from .extractor import BatchResult, run_batch
from .gui_formatter import format_batch_summary
from .report import build_report
from .report_writer import write_report

CRITERIA_FLAGS = (
    ("redline", "--redline", "修订标记（插入、删除、移动）"),
    ("highlight", "--highlight", "高亮文本"),
    ("square_brackets", "--square-brackets", "包含方括号的文本"),
    ("comments", "--comments", "带批注的段落"),
    ("footnotes", "--footnotes", "带脚注的段落"),
    ("endnotes", "--endnotes", "带尾注的段落"),
)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="redline-report",
        description="从 Word 文档中提取修订、批注等段落并生成汇总报告",
    )
    parser.add_argument("documents", nargs="+", help="待处理的 .docx 文件")
    parser.add_argument("-o", "--output", help="报告输出路径（默认 output/report_<日期>.docx）")
    for key, flag, help_text in CRITERIA_FLAGS:
        parser.add_argument(flag, dest=key, action="store_true", default=None, help=help_text)
    parser.add_argument("--no-log", action="store_true", help="不写入提取日志")
    return parser


def criteria_from_args(args: argparse.Namespace) -> Criteria:
    selected = {key: True for key, _, _ in CRITERIA_FLAGS if getattr(args, key)}
    if not selected:
        return Criteria.from_dict(None)
    values = {key: False for key, _, _ in CRITERIA_FLAGS}
    values.update(selected)
    return Criteria.from_dict(values)


def load_documents(paths: Sequence[str]) -> list[tuple[bytes, str]]:
    documents = []
    for raw in paths:
        path = Path(raw)
        if not path.exists():
            raise FileNotFoundError(f"document not found: {path}")
        if not path.is_file():
            raise IsADirectoryError(f"document path is not a file: {path}")
        documents.append((path.read_bytes(), path.name))
    return documents


def run(argv: Sequence[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    criteria = criteria_from_args(args)
    try:
        documents = load_documents(args.documents)
    except OSError as exc:
        print(f"读取失败：{exc}", file=sys.stderr)
        return 2
    output_path = Path(args.output) if args.output else config.default_report_path()
    batch, log_path = generate_report(documents, criteria, output_path, write_log_file=not args.no_log)
    print(format_batch_summary(batch, output_path, log_path))
    return 1 if batch.failures else 0


def generate_report(
    documents: list[tuple[bytes, str]],
    criteria: Criteria,
    output_path: Path,
    write_log_file: bool = True,
) -> tuple[BatchResult, Path | None]:
    started = perf_counter()
    batch_log = BatchLogState(start_time=datetime.now(), criteria=criteria.to_dict())
    batch = run_batch(documents, criteria, batch_log)
    write_report(build_report(batch), output_path=output_path)
    batch_log.output_path = output_path
    batch_log.elapsed_sec = perf_counter() - started
    log_path = None
    if write_log_file:
        config.cleanup_logs()
        log_path = write_log(batch_log)
    return batch, log_path


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
