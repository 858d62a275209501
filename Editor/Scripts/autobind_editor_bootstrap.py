#
# Copyright (c) Contributors to the Open 3D Engine Project.
# For complete copyright and license terms please see the LICENSE at the root of this distribution.
#
# SPDX-License-Identifier: Apache-2.0 OR MIT
#
"""
UI AutoBind Editor Bootstrap - Connects the AutoBind workflow to a Qt editor

Deferred callbacks run on the Qt event loop, so the scheduler's readiness
checks happen between editor frames instead of blocking the editor.
"""

import logging
from typing import Callable, Optional

from .autobind_workflow import AutoBindOrchestrator
from .bind_config import BindConfig
from .editor_host import EditorHost
from .prefs_store import PrefsStore
from .scene_loader import SceneObjectIds

logger = logging.getLogger("UIAutoBind.Bootstrap")

# Try to import PySide if available
try:
    from PySide2 import QtCore, QtWidgets
    HAS_PYSIDE = True
except ImportError:
    try:
        from PySide6 import QtCore, QtWidgets
        HAS_PYSIDE = True
    except ImportError:
        HAS_PYSIDE = False


class QtEditorHost(EditorHost):
    """Editor host whose deferred callbacks run on the Qt event loop."""

    def __init__(
        self,
        is_busy: Optional[Callable[[], bool]] = None,
        refresh_assets: Optional[Callable[[], None]] = None,
    ):
        if not HAS_PYSIDE:
            raise RuntimeError("PySide2/PySide6 not available - cannot create a Qt editor host")
        if is_busy is None:
            logger.warning(
                "No is_busy callback given: the editor always reports ready, so the "
                "first binding attempt may run before compilation starts. Queued "
                "owners are bound again after the reload."
            )
        self._is_busy = is_busy
        self._refresh_assets = refresh_assets

    def is_busy(self) -> bool:
        return bool(self._is_busy()) if self._is_busy is not None else False

    def run_later(self, callback: Callable[[], None]) -> None:
        QtCore.QTimer.singleShot(0, callback)

    def refresh_assets(self) -> None:
        if self._refresh_assets is not None:
            self._refresh_assets()


_orchestrator: Optional[AutoBindOrchestrator] = None


def get_orchestrator() -> Optional[AutoBindOrchestrator]:
    return _orchestrator


def start_autobind(
    config: BindConfig,
    storage: PrefsStore,
    id_service: SceneObjectIds,
    is_busy: Optional[Callable[[], bool]] = None,
    refresh_assets: Optional[Callable[[], None]] = None,
) -> Optional[AutoBindOrchestrator]:
    """
    Create the editor's orchestrator and resume bindings queued before a reload.

    This function is called during editor startup and again after every
    reload of the compiled scripts.
    """
    global _orchestrator

    if not HAS_PYSIDE:
        logger.warning("PySide2/PySide6 not available - UI AutoBind runs without editor integration")
        return None

    host = QtEditorHost(is_busy=is_busy, refresh_assets=refresh_assets)
    _orchestrator = AutoBindOrchestrator(config, host, storage, id_service)
    _orchestrator.scheduler.on_after_reload()

    logger.info("UI AutoBind: editor integration started")
    return _orchestrator


def show_validation_report(owner) -> None:
    """Show the validation report of an owner in a message box."""
    if not HAS_PYSIDE:
        logger.warning("PySide2/PySide6 not available - cannot show validation report")
        return
    if _orchestrator is None:
        logger.warning("UI AutoBind has not been started")
        return

    report = _orchestrator.binder.validate_binding(owner)
    text = _orchestrator.binder.generate_report(report)

    # Get the main editor window as parent
    main_window = None
    for widget in QtWidgets.QApplication.topLevelWidgets():
        if isinstance(widget, QtWidgets.QMainWindow):
            main_window = widget
            break

    if report.is_valid:
        QtWidgets.QMessageBox.information(main_window, "UI AutoBind", text)
    else:
        QtWidgets.QMessageBox.warning(main_window, "UI AutoBind", text)
