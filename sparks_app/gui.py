from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional

from PyQt6.QtCore import Qt, QTimer
from PyQt6.QtGui import QFontDatabase
from PyQt6.QtWidgets import QApplication, QMainWindow

from .slides import DEMO_DECK, Slide, load_slides, slides_from_records
from .widget import SparksWidget


class MainWindow(QMainWindow):
    """Full-window slide player. Right/Space: next slide, Escape: quit."""

    def __init__(self, slides: List[Slide], parent=None):
        super().__init__(parent)
        self.setWindowTitle("TextSparks")
        self.resize(1200, 500)

        self.sparks = SparksWidget(slides, parent=self)
        self.setCentralWidget(self.sparks)

    def showEvent(self, event) -> None:  # type: ignore[override]
        super().showEvent(event)
        # Start once the layout gave the widget its real size.
        if not self.sparks.compositor.running:
            QTimer.singleShot(0, self._start)

    def _start(self) -> None:
        if not self.sparks.start():
            print("[sparks] Initialization aborted.", file=sys.stderr)

    def keyPressEvent(self, event) -> None:  # type: ignore[override]
        key = event.key()
        if key in (Qt.Key.Key_Right, Qt.Key.Key_Space):
            self.sparks.advance()
        elif key == Qt.Key.Key_Escape:
            self.close()
        else:
            super().keyPressEvent(event)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self.sparks.stop()
        super().closeEvent(event)


def load_custom_fonts(fonts_dir: Optional[Path] = None) -> List[str]:
    """
    Load all .ttf and .otf files from a fonts directory (the project-level
    'fonts' directory by default) so the mask builder can use them.

    Returns the families that were registered.
    """
    if fonts_dir is None:
        fonts_dir = Path(__file__).resolve().parent.parent / "fonts"
    if not fonts_dir.is_dir():
        return []

    families: List[str] = []
    for pattern in ("*.ttf", "*.otf"):
        for font_path in sorted(fonts_dir.glob(pattern)):
            font_id = QFontDatabase.addApplicationFont(str(font_path))
            if font_id == -1:
                print(f"[sparks] Could not load font {font_path}.", file=sys.stderr)
                continue
            families.extend(QFontDatabase.applicationFontFamilies(font_id))
    return families


def main(argv: Optional[List[str]] = None) -> None:
    argv = list(sys.argv if argv is None else argv)
    app = QApplication(argv)

    load_custom_fonts()

    if len(argv) > 1:
        slides = load_slides(argv[1])
    else:
        slides = slides_from_records(DEMO_DECK)

    win = MainWindow(slides)
    win.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
