#
# Copyright (c) Contributors to the Open 3D Engine Project.
# For complete copyright and license terms please see the LICENSE at the root of this distribution.
#
# SPDX-License-Identifier: Apache-2.0 OR MIT
#
"""
Editor preference storage for UI AutoBind

String key/value storage that outlives a reload of the editor's compiled code.
The deferred binding scheduler keeps its pending queue here.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Union

logger = logging.getLogger("UIAutoBind.Prefs")

PREFS_FILE = "autobind_prefs.json"


class PrefsStore:
    """Durable string-keyed storage."""

    def get(self, key: str, default: str = "") -> str:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def has(self, key: str) -> bool:
        raise NotImplementedError


class MemoryPrefsStore(PrefsStore):
    """Preferences kept in a dict. Survives a reload as long as the object does."""

    def __init__(self, values: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(values or {})

    def get(self, key: str, default: str = "") -> str:
        return self._values.get(key, default)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def has(self, key: str) -> bool:
        return key in self._values


class JsonPrefsStore(PrefsStore):
    """
    Preferences stored in a JSON file.

    The file is re-read on every access and rewritten in full on every change,
    so two stores pointing at the same file always agree.
    """

    def __init__(self, path: Union[str, Path] = PREFS_FILE):
        self.path = Path(path)

    def get(self, key: str, default: str = "") -> str:
        value = self._load_settings().get(key)
        return default if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        settings = self._load_settings()
        settings[key] = str(value)
        self._save_settings(settings)

    def delete(self, key: str) -> None:
        settings = self._load_settings()
        if key in settings:
            del settings[key]
            self._save_settings(settings)

    def has(self, key: str) -> bool:
        return key in self._load_settings()

    def _load_settings(self) -> Dict[str, str]:
        """Load settings from the preferences file."""
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load preferences from {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed preferences file {self.path}")
            return {}
        return data

    def _save_settings(self, settings: Dict[str, str]) -> None:
        """Save settings to the preferences file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=".autobind_prefs_", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(settings, f, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
