#
# Copyright (c) Contributors to the Open 3D Engine Project.
# For complete copyright and license terms please see the LICENSE at the root of this distribution.
#
# SPDX-License-Identifier: Apache-2.0 OR MIT
#
"""
Deferred binding scheduler for UI AutoBind

Generated code cannot be bound until the editor has compiled it, and the
compile usually ends in a reload that drops every in-memory reference. The
scheduler therefore works in two halves:

1. enqueue() writes the owner's stable id to the preferences store and
   schedules a readiness check on the host's next tick.
2. After a reload, process_pending() reads the stored ids, clears them, maps
   each id back to a live owner and schedules a readiness check for it.

A readiness check re-arms itself while the host is busy, up to MAX_ATTEMPTS
times, and then either binds the owner or gives up. A bind that fails keeps
the id stored, so the pass after the next reload tries again.

Per-owner states:

    IDLE -> QUEUED -> AWAITING_READINESS -> RESOLVED
                                         -> TIMED_OUT

Usage:
    scheduler = DeferredBindingScheduler(prefs, ids, host, binder)
    scheduler.install()
    scheduler.enqueue(owner)
"""

import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional

from .autobind_owner import AutoBindOwner
from .component_binder import ComponentBinder
from .editor_host import EditorHost
from .prefs_store import PrefsStore
from .scene_loader import SceneObjectIds

logger = logging.getLogger("UIAutoBind.Scheduler")

PENDING_KEY = "UIAutoBind.PendingAutoBindIds"
MAX_ATTEMPTS = 100

_ID_DELIMITER = ";"


class BindState(Enum):
    IDLE = "Idle"
    QUEUED = "Queued"
    AWAITING_READINESS = "AwaitingReadiness"
    RESOLVED = "Resolved"
    TIMED_OUT = "TimedOut"


class DeferredBindingScheduler:
    """Binds owners once the host has finished compiling their generated code."""

    def __init__(
        self,
        storage: PrefsStore,
        id_service: SceneObjectIds,
        host: EditorHost,
        binder: ComponentBinder,
        max_attempts: int = MAX_ATTEMPTS,
    ):
        self.storage = storage
        self.id_service = id_service
        self.host = host
        self.binder = binder
        self.max_attempts = max_attempts

        self._states: Dict[str, BindState] = {}
        self._bind_results: Dict[str, bool] = {}

    # ============================================================
    # Queueing
    # ============================================================

    def enqueue(self, owner: AutoBindOwner) -> str:
        """
        Queue an owner for binding after the next compile.

        Enqueuing an owner that is already pending does not store its id twice,
        but it does schedule another readiness check.

        Returns:
            The owner's stable id
        """
        owner_id = self.id_service.id_of(owner)

        pending = self._read_pending()
        if owner_id not in pending:
            pending.append(owner_id)
            self._write_pending(pending)

        self._schedule(owner, owner_id)
        return owner_id

    def enqueue_all(self, owners: Iterable[AutoBindOwner]) -> List[str]:
        """Queue several owners, storing the pending ids in a single write."""
        pending = self._read_pending()
        scheduled = []

        for owner in owners:
            if owner is None or owner.node is None:
                continue
            owner_id = self.id_service.id_of(owner)
            if owner_id not in pending:
                pending.append(owner_id)
            scheduled.append((owner, owner_id))

        if scheduled:
            self._write_pending(pending)

        for owner, owner_id in scheduled:
            self._schedule(owner, owner_id)

        logger.info(f"Queued {len(scheduled)} owners for binding")
        return [owner_id for _, owner_id in scheduled]

    def process_pending(self) -> int:
        """
        Resume the ids stored before a reload.

        The stored list is cleared before anything else happens, so a reload
        that interrupts this call cannot process the same ids twice. Ids that
        no longer resolve to an owner are dropped.

        Returns:
            Number of owners scheduled
        """
        pending = self._read_pending()
        if not pending:
            return 0

        self.storage.set(PENDING_KEY, "")

        resumed = []
        for owner_id in pending:
            try:
                owner = self.id_service.resolve_id(owner_id)
            except Exception as e:
                logger.warning(f"Dropping pending id {owner_id}: {e}")
                continue
            if owner is None:
                logger.debug(f"Dropping pending id {owner_id}: owner no longer exists")
                continue
            resumed.append((owner, owner_id))

        for owner, owner_id in resumed:
            self._schedule(owner, owner_id)

        logger.info(f"Resumed {len(resumed)} of {len(pending)} pending bindings")
        return len(resumed)

    def install(self) -> None:
        """Process the stored ids on the host's next tick."""
        self.host.run_later(self.process_pending)

    def on_after_reload(self) -> None:
        self.install()

    # ============================================================
    # State
    # ============================================================

    def get_state(self, owner_or_id) -> BindState:
        owner_id = self._to_id(owner_or_id)
        return self._states.get(owner_id, BindState.IDLE)

    def get_bind_result(self, owner_or_id) -> Optional[bool]:
        """Binder result of a resolved owner, or None if it was not bound."""
        return self._bind_results.get(self._to_id(owner_or_id))

    def get_pending_ids(self) -> List[str]:
        return self._read_pending()

    # ============================================================
    # Readiness polling
    # ============================================================

    def _schedule(self, owner: AutoBindOwner, owner_id: str) -> None:
        self._states[owner_id] = BindState.QUEUED
        self._bind_results.pop(owner_id, None)
        self.host.run_later(lambda: self._bind_when_ready(owner, owner_id, 0))

    def _bind_when_ready(self, owner: AutoBindOwner, owner_id: str, attempt: int) -> None:
        if self._states.get(owner_id) in (BindState.RESOLVED, BindState.TIMED_OUT):
            # A duplicate check already finished this owner
            return

        if owner.node is None or not owner.node.is_alive:
            logger.debug(f"{owner_id}: owner destroyed while waiting, dropped")
            self._states.pop(owner_id, None)
            self._remove_pending(owner_id)
            return

        self._states[owner_id] = BindState.AWAITING_READINESS

        if self.host.is_busy():
            if attempt >= self.max_attempts:
                logger.warning(
                    f"{owner.name}: editor still busy after {attempt} attempts, "
                    f"giving up. Run the bind command again once compilation finishes."
                )
                self._states[owner_id] = BindState.TIMED_OUT
                self._remove_pending(owner_id)
                return

            self.host.run_later(
                lambda: self._bind_when_ready(owner, owner_id, attempt + 1)
            )
            return

        success = self.binder.bind_one(owner)
        self._bind_results[owner_id] = success
        self._states[owner_id] = BindState.RESOLVED

        if success:
            self._remove_pending(owner_id)
        else:
            # Kept stored so the owner is bound again after the next reload
            logger.warning(f"{owner.name}: binding finished with failures, retrying after reload")

    # ============================================================
    # Persistence
    # ============================================================

    def _read_pending(self) -> List[str]:
        value = self.storage.get(PENDING_KEY, "")
        ids = []
        for owner_id in value.split(_ID_DELIMITER):
            if owner_id and owner_id not in ids:
                ids.append(owner_id)
        return ids

    def _write_pending(self, ids: List[str]) -> None:
        self.storage.set(PENDING_KEY, _ID_DELIMITER.join(ids))

    def _remove_pending(self, owner_id: str) -> None:
        pending = self._read_pending()
        if owner_id in pending:
            pending.remove(owner_id)
            self._write_pending(pending)

    def _to_id(self, owner_or_id) -> str:
        if isinstance(owner_or_id, AutoBindOwner):
            return self.id_service.id_of(owner_or_id)
        return owner_or_id
