"""
GradlePatch GUI panel

- Pick a Gradle template (defaults to the project's mainTemplate.gradle)
- Pick a toolchain version bundle
- Check: classify fragments (no writes)
- Fix Android Dependencies: one patch run, report shown below
"""

from __future__ import annotations

import sys
from pathlib import Path

from PySide6.QtWidgets import (
    QApplication,
    QComboBox,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QPushButton,
    QTextEdit,
    QVBoxLayout,
    QWidget,
)

from gradlepatch.core.config import PatcherConfig, load_config
from gradlepatch.core.paths import get_paths
from gradlepatch.integration import SETUP_INSTRUCTIONS, build_orchestrator, check_configuration
from gradlepatch.patching.errors import FileMissing, PatchError
from gradlepatch.patching.fragments import VERSION_SETS


def _safe(s: str) -> str:
    return (s or "").strip()


class PatchPanel(QWidget):
    def __init__(self, cfg: PatcherConfig, template_path: Path, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.cfg = cfg

        outer = QVBoxLayout(self)
        outer.setContentsMargins(16, 16, 16, 16)
        outer.setSpacing(10)

        header = QLabel("Android Dependencies")
        header.setStyleSheet("font-size: 18px; font-weight: 600;")
        outer.addWidget(header)

        hint = QLabel("Backs up the template before any change. Safe to run repeatedly.")
        hint.setStyleSheet("opacity: 0.85;")
        outer.addWidget(hint)

        row = QHBoxLayout()
        self.in_path = QLineEdit(str(template_path))
        self.btn_browse = QPushButton("Browse…")
        self.btn_browse.clicked.connect(self._on_browse)
        self.toolchain = QComboBox()
        self.toolchain.addItems(sorted(VERSION_SETS))
        if cfg.toolchain in VERSION_SETS:
            self.toolchain.setCurrentText(cfg.toolchain)
        row.addWidget(self.in_path, 1)
        row.addWidget(self.btn_browse)
        row.addWidget(self.toolchain)
        outer.addLayout(row)

        actions = QHBoxLayout()
        self.btn_check = QPushButton("Check")
        self.btn_check.clicked.connect(self._on_check)
        self.btn_fix = QPushButton("Fix Android Dependencies")
        self.btn_fix.clicked.connect(self._on_fix)
        actions.addWidget(self.btn_check)
        actions.addWidget(self.btn_fix)
        actions.addStretch(1)
        outer.addLayout(actions)

        self.report = QTextEdit()
        self.report.setReadOnly(True)
        self.report.setPlaceholderText("Run Check or Fix…")
        outer.addWidget(self.report, 1)

    def _path(self) -> Path:
        return Path(_safe(self.in_path.text()))

    def _on_browse(self) -> None:
        start = str(self._path().parent)
        path, _ = QFileDialog.getOpenFileName(self, "Gradle template", start, "Gradle (*.gradle);;All (*)")
        if path:
            self.in_path.setText(path)

    def _on_check(self) -> None:
        try:
            orchestrator = build_orchestrator(self.cfg, toolchain=self.toolchain.currentText())
            states = orchestrator.check(self._path())
        except FileMissing as e:
            self.report.setPlainText(f"{e}\n\n{SETUP_INSTRUCTIONS}")
            return
        except (ValueError, PatchError) as e:
            self.report.setPlainText(f"Check failed: {e}")
            return
        lines = [f"{state.value:<16} {marker}" for marker, state in states.items()]
        self.report.setPlainText("\n".join(lines))

    def _on_fix(self) -> None:
        try:
            result = check_configuration(
                self._path(),
                active_platform=None,
                cfg=self.cfg,
                check_active_platform=False,
                toolchain=self.toolchain.currentText(),
            )
        except ValueError as e:
            self.report.setPlainText(f"Fix failed: {e}")
            return
        text = result.message
        if result.backups:
            text += "\n\nBackups:\n" + "\n".join(result.backups)
        self.report.setPlainText(text)


class MainWindow(QMainWindow):
    def __init__(self) -> None:
        super().__init__()
        paths = get_paths()
        cfg = load_config(paths.config_path)
        template = Path(cfg.template_path) if cfg.template_path else paths.template_path

        self.setWindowTitle("GradlePatch")
        self.resize(900, 560)
        self.setCentralWidget(PatchPanel(cfg, template, self))


def run() -> int:
    app = QApplication.instance() or QApplication(sys.argv)
    w = MainWindow()
    w.show()
    return int(app.exec())


if __name__ == "__main__":
    raise SystemExit(run())
