import logging
import sys

from PySide6.QtWidgets import QApplication

from gst_canvas.ui.main_window import MainWindow


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = QApplication(sys.argv)
    window = MainWindow()
    window.resize(1280, 900)
    window.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
