#
# Copyright (c) Contributors to the Open 3D Engine Project.
# For complete copyright and license terms please see the LICENSE at the root of this distribution.
#
# SPDX-License-Identifier: Apache-2.0 OR MIT
#
"""
Editor host services used by UI AutoBind

The pipeline needs three things from the editor it runs in: whether the editor
is busy (compiling or importing), a way to run a callback on a later tick, and
a way to ask for an asset refresh after files were written.

ManualEditorHost implements them without an event loop. Callbacks queue up
until tick() is called, which makes every scheduler step explicit in tests and
in the command line tool. The Qt implementation lives in
autobind_editor_bootstrap.
"""

import logging
from typing import Callable, List, Optional

logger = logging.getLogger("UIAutoBind.Host")


class EditorHost:
    """Readiness signal, deferred callbacks and asset refresh."""

    def is_busy(self) -> bool:
        raise NotImplementedError

    def run_later(self, callback: Callable[[], None]) -> None:
        raise NotImplementedError

    def refresh_assets(self) -> None:
        raise NotImplementedError


class ManualEditorHost(EditorHost):
    def __init__(self, refresh_callback: Optional[Callable[[], None]] = None):
        self.busy = False
        self.refresh_count = 0
        self._refresh_callback = refresh_callback
        self._queue: List[Callable[[], None]] = []

    @property
    def pending(self) -> int:
        return len(self._queue)

    def is_busy(self) -> bool:
        return self.busy

    def run_later(self, callback: Callable[[], None]) -> None:
        self._queue.append(callback)

    def refresh_assets(self) -> None:
        self.refresh_count += 1
        if self._refresh_callback is not None:
            self._refresh_callback()

    def tick(self) -> int:
        """
        Run the callbacks queued before this tick.

        Callbacks queued while the tick runs wait for the next one.

        Returns:
            Number of callbacks run
        """
        callbacks, self._queue = self._queue, []
        for callback in callbacks:
            callback()
        return len(callbacks)

    def run_until_idle(self, max_ticks: int = 1000) -> int:
        """Tick until no callbacks are queued. Returns the number of ticks."""
        ticks = 0
        while self._queue and ticks < max_ticks:
            self.tick()
            ticks += 1
        if self._queue:
            logger.warning(f"Still {len(self._queue)} callbacks queued after {ticks} ticks")
        return ticks
