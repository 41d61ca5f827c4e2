from __future__ import annotations

import sys
from pathlib import Path

from . import config
from .classifier import Criteria
from .cli import generate_report, load_documents
from .gui_formatter import CRITERIA_LABELS, format_batch_summary


def _require_pyside6():
    try:
        from PySide6 import QtCore, QtGui, QtWidgets  # noqa: F401
    except ImportError as exc:
        raise SystemExit("PySide6 未安装，请先安装 PySide6") from exc
    return QtCore, QtGui, QtWidgets


def _is_docx(path: str) -> bool:
    return path.lower().endswith(".docx") and not Path(path).name.startswith("~$")


def _merge_paths(existing: list[str], incoming: list[str]) -> list[str]:
    merged = list(existing)
    for path in incoming:
        if _is_docx(path) and path not in merged:
            merged.append(path)
    return merged


def _move_item(items: list[str], index: int, offset: int) -> int:
    target = index + offset
    if not (0 <= index < len(items)) or not (0 <= target < len(items)):
        return index
    items[index], items[target] = items[target], items[index]
    return target


def main() -> None:
    QtCore, QtGui, QtWidgets = _require_pyside6()

    class ExtractionWorker(QtCore.QObject):
        finished = QtCore.Signal(bool, str, str)
        failures = QtCore.Signal(str)

        def __init__(self, paths: list[str], criteria: Criteria, output_path: str):
            super().__init__()
            self.paths = list(paths)
            self.criteria = criteria
            self.output_path = output_path

        @QtCore.Slot()
        def run(self) -> None:
            try:
                documents = load_documents(self.paths)
                output = Path(self.output_path)
                batch, log_path = generate_report(documents, self.criteria, output)
            except (OSError, ValueError) as exc:
                self.finished.emit(False, "", str(exc))
                return
            if batch.failures:
                self.failures.emit(
                    "\n".join(f"{failure.name}：{failure.error}" for failure in batch.failures)
                )
            self.finished.emit(True, str(output), format_batch_summary(batch, output, log_path))

    class MainWindow(QtWidgets.QWidget):
        def __init__(self) -> None:
            super().__init__()
            self._thread: QtCore.QThread | None = None
            self._worker: ExtractionWorker | None = None
            self._paths: list[str] = []
            self._build_ui(QtWidgets, QtGui, QtCore)

        def _build_ui(self, QtWidgets, QtGui, QtCore) -> None:
            self._QtWidgets = QtWidgets
            self._QtGui = QtGui
            self._QtCore = QtCore
            self.setWindowTitle("修订段落提取工具")
            self.resize(720, 560)
            accept_drops = getattr(self, "setAcceptDrops", None)
            if callable(accept_drops):
                accept_drops(True)

            self.file_list = QtWidgets.QListWidget()
            self.add_button = QtWidgets.QPushButton("添加文件...")
            self.remove_button = QtWidgets.QPushButton("移除选中")
            self.up_button = QtWidgets.QPushButton("上移")
            self.down_button = QtWidgets.QPushButton("下移")
            self.criteria_checks: dict[str, object] = {}
            for key, label in CRITERIA_LABELS.items():
                check = QtWidgets.QCheckBox(label)
                check.setChecked(bool(config.DEFAULT_CRITERIA.get(key)))
                self.criteria_checks[key] = check
            self.output_edit = QtWidgets.QLineEdit()
            self.output_edit.setText(str(config.default_report_path()))
            self.output_button = QtWidgets.QPushButton("选择...")
            self.generate_button = QtWidgets.QPushButton("生成报告")
            self.open_button = QtWidgets.QPushButton("打开输出目录")
            self.status_label = QtWidgets.QLabel("就绪")
            self.progress = QtWidgets.QProgressBar()
            self.progress.setRange(0, 1)
            self.result_view = QtWidgets.QTextEdit()
            self.result_view.setReadOnly(True)

            self.add_button.clicked.connect(self._choose_documents)
            self.remove_button.clicked.connect(self._remove_selected)
            self.up_button.clicked.connect(lambda: self._move_selected(-1))
            self.down_button.clicked.connect(lambda: self._move_selected(1))
            self.output_button.clicked.connect(self._choose_output)
            self.generate_button.clicked.connect(self._start_extraction)
            self.open_button.clicked.connect(self._open_output_dir)
            self.output_edit.textChanged.connect(self._update_actions)
            for check in self.criteria_checks.values():
                toggled = getattr(check, "toggled", None)
                if toggled is not None:
                    toggled.connect(self._update_actions)
            self._update_actions()

            list_buttons = QtWidgets.QVBoxLayout()
            list_buttons.addWidget(self.add_button)
            list_buttons.addWidget(self.remove_button)
            list_buttons.addWidget(self.up_button)
            list_buttons.addWidget(self.down_button)
            list_buttons.addStretch(1)
            list_layout = QtWidgets.QHBoxLayout()
            list_layout.addWidget(self.file_list)
            list_layout.addLayout(list_buttons)

            criteria_layout = QtWidgets.QGridLayout()
            for index, check in enumerate(self.criteria_checks.values()):
                criteria_layout.addWidget(check, index // 3, index % 3)

            output_layout = QtWidgets.QHBoxLayout()
            output_layout.addWidget(QtWidgets.QLabel("报告位置："))
            output_layout.addWidget(self.output_edit)
            output_layout.addWidget(self.output_button)

            button_layout = QtWidgets.QHBoxLayout()
            button_layout.addWidget(self.generate_button)
            button_layout.addWidget(self.open_button)
            button_layout.addStretch(1)

            status_layout = QtWidgets.QHBoxLayout()
            status_layout.addWidget(QtWidgets.QLabel("状态："))
            status_layout.addWidget(self.status_label)
            status_layout.addStretch(1)
            status_layout.addWidget(self.progress)

            layout = QtWidgets.QVBoxLayout()
            layout.addWidget(QtWidgets.QLabel("待处理文件（可拖入 .docx）："))
            layout.addLayout(list_layout)
            layout.addWidget(QtWidgets.QLabel("提取条件："))
            layout.addLayout(criteria_layout)
            layout.addLayout(output_layout)
            layout.addLayout(button_layout)
            layout.addLayout(status_layout)
            layout.addWidget(QtWidgets.QLabel("提取结果："))
            layout.addWidget(self.result_view)
            self.setLayout(layout)

        def dragEnterEvent(self, event) -> None:
            if event.mimeData().hasUrls():
                event.acceptProposedAction()
            else:
                event.ignore()

        def dropEvent(self, event) -> None:
            paths = [url.toLocalFile() for url in event.mimeData().urls()]
            self._add_paths(paths)
            event.acceptProposedAction()

        def _current_criteria(self) -> Criteria:
            return Criteria.from_dict(
                {key: check.isChecked() for key, check in self.criteria_checks.items()}
            )

        def _thread_running(self) -> bool:
            if self._thread is None:
                return False
            is_running = getattr(self._thread, "isRunning", None)
            if callable(is_running):
                return bool(is_running())
            return True

        def _update_actions(self, *_args) -> None:
            ready = (
                bool(self._paths)
                and bool(self.output_edit.text().strip())
                and self._current_criteria().any_enabled()
            )
            self.generate_button.setEnabled(ready and not self._thread_running())
            has_paths = bool(self._paths)
            self.remove_button.setEnabled(has_paths)
            self.up_button.setEnabled(len(self._paths) > 1)
            self.down_button.setEnabled(len(self._paths) > 1)

        def _refresh_file_list(self, selected: int | None = None) -> None:
            self.file_list.clear()
            for path in self._paths:
                self.file_list.addItem(path)
            if selected is not None and 0 <= selected < len(self._paths):
                self.file_list.setCurrentRow(selected)
            self._update_actions()

        def _add_paths(self, paths: list[str]) -> None:
            merged = _merge_paths(self._paths, paths)
            skipped = [path for path in paths if not _is_docx(path)]
            self._paths = merged
            self._refresh_file_list()
            if skipped:
                self.status_label.setText(f"已忽略 {len(skipped)} 个非 .docx 文件")

        def _choose_documents(self) -> None:
            paths, _ = self._QtWidgets.QFileDialog.getOpenFileNames(
                self,
                "选择 Word 文件",
                "",
                "Word 文件 (*.docx)",
            )
            if paths:
                self._add_paths(list(paths))

        def _remove_selected(self) -> None:
            row = self.file_list.currentRow()
            if 0 <= row < len(self._paths):
                self._paths.pop(row)
                self._refresh_file_list(min(row, len(self._paths) - 1))

        def _move_selected(self, offset: int) -> None:
            row = self.file_list.currentRow()
            target = _move_item(self._paths, row, offset)
            self._refresh_file_list(target)

        def _choose_output(self) -> None:
            path, _ = self._QtWidgets.QFileDialog.getSaveFileName(
                self,
                "选择报告位置",
                self.output_edit.text().strip() or str(config.default_report_path()),
                "Word 文件 (*.docx)",
            )
            if path:
                self.output_edit.setText(path)

        def _set_busy(self, busy: bool) -> None:
            if busy:
                self.progress.setRange(0, 0)
                self.status_label.setText("提取中...")
            else:
                self.progress.setRange(0, 1)
                self.status_label.setText("就绪")
            for widget in (
                self.file_list,
                self.add_button,
                self.output_edit,
                self.output_button,
                self.open_button,
                *self.criteria_checks.values(),
            ):
                widget.setEnabled(not busy)
            if busy:
                self.generate_button.setEnabled(False)
                self.remove_button.setEnabled(False)
                self.up_button.setEnabled(False)
                self.down_button.setEnabled(False)
            else:
                self._update_actions()

        def _start_extraction(self) -> None:
            if not self._paths:
                return
            criteria = self._current_criteria()
            if not criteria.any_enabled():
                self._QtWidgets.QMessageBox.warning(self, "提取条件", "请至少选择一个提取条件")
                return
            output_path = self.output_edit.text().strip() or str(config.default_report_path())
            self.result_view.setPlainText("")
            self._set_busy(True)

            self._thread = QtCore.QThread()
            self._worker = ExtractionWorker(self._paths, criteria, output_path)
            self._worker.moveToThread(self._thread)
            self._thread.started.connect(self._worker.run)
            self._worker.failures.connect(self._warn_failures)
            self._worker.finished.connect(self._handle_finished)
            self._worker.finished.connect(self._thread.quit)
            self._worker.finished.connect(self._worker.deleteLater)
            self._thread.finished.connect(self._cleanup_thread)
            self._thread.start()

        def _warn_failures(self, message: str) -> None:
            self._QtWidgets.QMessageBox.warning(self, "部分文件提取失败", message)

        def _handle_finished(self, success: bool, output_path: str, message: str) -> None:
            self._set_busy(False)
            self.status_label.setText("完成" if success else "失败")
            if success:
                self.output_edit.setText(output_path)
                self.result_view.setPlainText(message)
            else:
                self._QtWidgets.QMessageBox.critical(self, "提取失败", message)

        def _cleanup_thread(self) -> None:
            if self._thread is None:
                return
            self._thread.deleteLater()
            self._thread = None
            self._worker = None
            self._update_actions()

        def _open_output_dir(self) -> None:
            path_text = self.output_edit.text().strip()
            if path_text:
                target = Path(path_text).parent
            else:
                target = config.OUTPUT_DIR
            config.ensure_base_dirs()
            opened = self._QtGui.QDesktopServices.openUrl(
                self._QtCore.QUrl.fromLocalFile(str(target))
            )
            if not opened:
                self._QtWidgets.QMessageBox.warning(
                    self,
                    "打开失败",
                    f"无法打开目录：{target}",
                )

    app = QtWidgets.QApplication(sys.argv)
    window = MainWindow()
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
