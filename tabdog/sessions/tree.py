"""
Session tree widget - the management view.

Lists saved sessions newest first, a batch at a time. Scrolling near the
bottom loads the next batch. Each session offers restore, rename and
delete; the toolbar offers save, clear, upload and download.
"""

from __future__ import annotations
import asyncio
import logging
import sys
from pathlib import Path
from typing import Callable, Optional

from PyQt6.QtWidgets import (
    QApplication, QWidget, QVBoxLayout, QHBoxLayout, QTreeWidget,
    QTreeWidgetItem, QPushButton, QMenu, QInputDialog, QMessageBox,
    QAbstractItemView, QLabel, QFileDialog
)
from PyQt6.QtCore import Qt, pyqtSignal, QTimer

from .. import TabDogError
from ..config import AppSettings, get_settings
from ..store import SqliteStore
from ..tabs import DevToolsTabSource, TabSource
from .capture import get_predicate
from .io import ImportParseError, backup_filename, write_backup
from .manager import Outcome, SessionManager
from .models import TabRecord
from .render import BatchedRenderer, RenderedSession

logger = logging.getLogger(__name__)

# Item data roles
ROLE_SESSION = Qt.ItemDataRole.UserRole
ROLE_TAB = Qt.ItemDataRole.UserRole + 1

# Pixels from the bottom at which the next batch is requested
SCROLL_MARGIN = 40
MESSAGE_TIMEOUT_MS = 3000


def _run(coro):
    """Run one manager coroutine to completion from a Qt slot."""
    return asyncio.run(coro)


class ScrollTrigger:
    """
    Continuation trigger for the batched renderer.

    Adds a "Loading more..." sentinel row and fires once the view is
    scrolled to within SCROLL_MARGIN of the bottom, or immediately (on the
    next event loop pass) if everything already fits.
    """

    def __init__(self, tree: QTreeWidget, callback: Callable[[], None]):
        self._tree = tree
        self._callback = callback
        self._fired = False

        self._sentinel = QTreeWidgetItem(["Loading more..."])
        self._sentinel.setFlags(Qt.ItemFlag.NoItemFlags)
        tree.addTopLevelItem(self._sentinel)

        self._bar = tree.verticalScrollBar()
        self._bar.valueChanged.connect(self._check)
        self._bar.rangeChanged.connect(self._check)
        QTimer.singleShot(0, self._check)

    def _check(self, *args) -> None:
        if self._fired:
            return
        if self._bar.value() >= self._bar.maximum() - SCROLL_MARGIN:
            self._fired = True
            QTimer.singleShot(0, self._callback)

    def detach(self) -> None:
        self._fired = True
        try:
            self._bar.valueChanged.disconnect(self._check)
            self._bar.rangeChanged.disconnect(self._check)
        except TypeError:
            pass  # already disconnected
        index = self._tree.indexOfTopLevelItem(self._sentinel)
        if index >= 0:
            self._tree.takeTopLevelItem(index)


class SessionTreeWidget(QWidget):
    """
    Saved session browser.

    Signals:
        status_message(text): Emitted with user-facing notices
    """

    status_message = pyqtSignal(str)

    def __init__(
        self,
        manager: SessionManager,
        source: TabSource,
        settings: AppSettings = None,
        parent: QWidget = None
    ):
        super().__init__(parent)
        self.manager = manager
        self.source = source
        self.settings = settings or manager.settings

        self._renderer = BatchedRenderer(
            sink=self._add_session_item,
            trigger_factory=lambda resume: ScrollTrigger(self._tree, resume),
            batch_size=self.settings.batch_size,
            placeholder=self.settings.placeholder_name,
        )

        self._message_timer = QTimer()
        self._message_timer.setSingleShot(True)
        self._message_timer.timeout.connect(lambda: self._message_label.clear())

        self._setup_ui()
        self.refresh()

    def _setup_ui(self) -> None:
        """Build the UI."""
        layout = QVBoxLayout(self)
        layout.setContentsMargins(8, 8, 8, 8)
        layout.setSpacing(4)

        # Toolbar row
        toolbar = QHBoxLayout()
        toolbar.setSpacing(4)

        self._save_btn = QPushButton("Save Other Tabs")
        self._save_btn.setToolTip("Save and close every tab except the current one")
        self._save_btn.clicked.connect(self._save_tabs)
        toolbar.addWidget(self._save_btn)

        self._clear_btn = QPushButton("Clear All")
        self._clear_btn.clicked.connect(self._clear_all)
        toolbar.addWidget(self._clear_btn)

        toolbar.addStretch()

        self._count_label = QLabel("0")
        self._count_label.setToolTip("Saved tabs")
        toolbar.addWidget(self._count_label)

        self._upload_btn = QPushButton("Upload")
        self._upload_btn.clicked.connect(self._upload)
        toolbar.addWidget(self._upload_btn)

        self._download_btn = QPushButton("Download")
        self._download_btn.clicked.connect(self._download)
        toolbar.addWidget(self._download_btn)

        layout.addLayout(toolbar)

        self._message_label = QLabel("")
        layout.addWidget(self._message_label)

        self._tree = QTreeWidget()
        self._tree.setHeaderHidden(True)
        self._tree.setRootIsDecorated(True)
        self._tree.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        self._tree.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        self._tree.itemDoubleClicked.connect(self._on_double_click)
        self._tree.customContextMenuRequested.connect(self._show_context_menu)
        layout.addWidget(self._tree)

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def refresh(self) -> None:
        """Reload from the store and render the first batch."""
        # Detach the old trigger while its sentinel row still exists
        self._renderer.cancel()
        self._tree.clear()
        tabs, metadata = _run(self.manager.load())
        self._renderer.render(tabs, metadata)
        self._count_label.setText(str(len(tabs)))

        if self._renderer.is_empty:
            empty = QTreeWidgetItem(["No saved tabs yet. Save some tabs to see them here!"])
            empty.setFlags(Qt.ItemFlag.NoItemFlags)
            self._tree.addTopLevelItem(empty)

    def _add_session_item(self, view: RenderedSession) -> None:
        if view.grouped:
            item = QTreeWidgetItem([view.summary])
            item.setData(0, ROLE_SESSION, view)
            for tab in view.tabs:
                item.addChild(self._create_tab_item(tab))
            self._tree.addTopLevelItem(item)
            item.setExpanded(True)
        else:
            self._tree.addTopLevelItem(self._create_tab_item(view.tabs[0]))

    def _create_tab_item(self, tab: TabRecord) -> QTreeWidgetItem:
        item = QTreeWidgetItem([tab.title or tab.url])
        item.setToolTip(0, tab.url)
        item.setData(0, ROLE_TAB, tab)
        return item

    # -------------------------------------------------------------------------
    # Notices
    # -------------------------------------------------------------------------

    def show_message(self, text: str) -> None:
        self._message_label.setText(text)
        self._message_timer.start(MESSAGE_TIMEOUT_MS)
        self.status_message.emit(text)

    def _report(self, outcome: Outcome) -> None:
        self.show_message(outcome.message)
        if not outcome.noop:
            self.refresh()

    def _perform(self, title: str, coro) -> Optional[Outcome]:
        """Run an operation; failures are shown and the view reloaded."""
        try:
            outcome = _run(coro)
        except TabDogError as e:
            logger.error(f"{title} failed: {e}")
            QMessageBox.critical(self, f"{title} Failed", str(e))
            self.refresh()
            return None
        self._report(outcome)
        return outcome

    def _confirm(self, prompt: str) -> bool:
        reply = QMessageBox.question(
            self, "Confirm", prompt,
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            QMessageBox.StandardButton.No
        )
        return reply == QMessageBox.StandardButton.Yes

    # -------------------------------------------------------------------------
    # Toolbar actions
    # -------------------------------------------------------------------------

    def _save_tabs(self) -> None:
        predicate = get_predicate("others", self.settings.extension_url_prefix)
        self._perform("Save", self.manager.save_tabs(self.source, predicate))

    def _clear_all(self) -> None:
        self._perform("Clear", self.manager.clear_all(self._confirm))

    def _upload(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            self,
            "Import Tabs",
            "",
            "Text Files (*.txt);;JSON Snapshots (*.json);;All Files (*)"
        )
        if not path:
            return

        try:
            outcome = _run(self.manager.import_file(Path(path)))
        except ImportParseError as e:
            QMessageBox.critical(self, "Import Failed", f"Error importing tabs: {e}")
            return
        except TabDogError as e:
            QMessageBox.critical(self, "Import Failed", str(e))
            self.refresh()
            return
        self._report(outcome)

    def _download(self) -> None:
        outcome = _run(self.manager.export())
        if outcome.noop:
            self.show_message(outcome.message)
            return

        path, _ = QFileDialog.getSaveFileName(
            self,
            "Export Tabs",
            backup_filename(self.settings.product_name),
            "Text Files (*.txt)"
        )
        if not path:
            return

        try:
            write_backup(Path(path), outcome.content)
        except OSError as e:
            QMessageBox.critical(self, "Export Failed", f"Failed to export tabs:\n{e}")
            return
        self.show_message(f"Exported {outcome.count} tabs to {Path(path).name}")

    # -------------------------------------------------------------------------
    # Session actions
    # -------------------------------------------------------------------------

    def _on_double_click(self, item: QTreeWidgetItem, column: int) -> None:
        tab = item.data(0, ROLE_TAB)
        if tab is not None:
            self._perform("Open", self.manager.restore_tab(tab, self.source))

    def _show_context_menu(self, pos) -> None:
        item = self._tree.itemAt(pos)
        if item is None:
            return
        view: Optional[RenderedSession] = item.data(0, ROLE_SESSION)
        if view is None:
            return

        menu = QMenu(self)
        menu.addAction("Restore All", lambda: self._restore(view))
        if not view.key.is_legacy:
            menu.addAction("Rename Session", lambda: self._rename(view))
        menu.addSeparator()
        menu.addAction("Delete Session", lambda: self._delete(view))
        menu.exec(self._tree.viewport().mapToGlobal(pos))

    def _restore(self, view: RenderedSession) -> None:
        self._perform("Restore", self.manager.restore_session(view.key, self.source))

    def _rename(self, view: RenderedSession) -> None:
        name, ok = QInputDialog.getText(
            self, "Rename Session", "Session name:",
            text=view.custom_name or ""
        )
        if ok:
            self._perform("Rename", self.manager.rename_session(view.key, name))

    def _delete(self, view: RenderedSession) -> None:
        self._perform("Delete", self.manager.delete_session(view.key, self._confirm))

    def closeEvent(self, event) -> None:
        self._renderer.cancel()
        super().closeEvent(event)


def run_standalone(settings: AppSettings = None) -> int:
    """Launch the management view as its own application."""
    settings = settings or get_settings()

    app = QApplication.instance() or QApplication(sys.argv)
    app.setApplicationName("TabDog")

    manager = SessionManager(SqliteStore(Path(settings.db_path)), settings)
    source = DevToolsTabSource(settings.devtools_host, settings.devtools_port)

    widget = SessionTreeWidget(manager, source, settings)
    widget.setWindowTitle("TabDog - Saved Tabs")
    widget.resize(900, 700)
    widget.show()

    return app.exec()
