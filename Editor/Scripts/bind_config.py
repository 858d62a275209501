#
# Copyright (c) Contributors to the Open 3D Engine Project.
# For complete copyright and license terms please see the LICENSE at the root of this distribution.
#
# SPDX-License-Identifier: Apache-2.0 OR MIT
#
"""
Binding configuration for UI AutoBind

The configuration holds the ordered suffix rules used by the naming-convention
resolver and the options used by the code generator (namespace, output path,
base class, interfaces and extra using directives).

A configuration is immutable once loaded. It is passed explicitly into every
pipeline call; ConfigManager only loads, creates and replaces the file.

Usage:
    from bind_config import ConfigManager

    config = ConfigManager.load_or_create_config("autobind_config.json")
    config.get_auto_generated_file_path("MainMenu")
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from .scene_tree import TypeRef

logger = logging.getLogger("UIAutoBind.Config")

CONFIG_FILE = "autobind_config.json"

GENERATED_FILE_SUFFIX = ".AutoBind.cs"
MANUAL_FILE_SUFFIX = ".cs"


class ConfigError(Exception):
    """The binding configuration is missing or invalid."""


@dataclass(frozen=True)
class SuffixRule:
    """Maps a node-name suffix to the component type it should bind."""

    suffix: str
    component_type: TypeRef

    def matches(self, name: str) -> bool:
        return bool(self.suffix) and name.endswith(self.suffix)


DEFAULT_SUFFIX_RULES: Tuple[SuffixRule, ...] = (
    SuffixRule("Button", TypeRef("UnityEngine.UI.Button")),
    SuffixRule("Btn", TypeRef("UnityEngine.UI.Button")),
    SuffixRule("Text", TypeRef("UnityEngine.UI.Text")),
    SuffixRule("Label", TypeRef("UnityEngine.UI.Text")),
    SuffixRule("RawImage", TypeRef("UnityEngine.UI.RawImage")),
    SuffixRule("Image", TypeRef("UnityEngine.UI.Image")),
    SuffixRule("Img", TypeRef("UnityEngine.UI.Image")),
    SuffixRule("Toggle", TypeRef("UnityEngine.UI.Toggle")),
    SuffixRule("Slider", TypeRef("UnityEngine.UI.Slider")),
    SuffixRule("ScrollRect", TypeRef("UnityEngine.UI.ScrollRect")),
    SuffixRule("InputField", TypeRef("UnityEngine.UI.InputField")),
    SuffixRule("Dropdown", TypeRef("UnityEngine.UI.Dropdown")),
    SuffixRule("Rect", TypeRef("UnityEngine.RectTransform")),
)


@dataclass(frozen=True)
class BindConfig:
    """Configuration for the resolver and the code generator."""

    # Code generation options
    namespace_name: str = "UI"
    base_path: str = "Assets/Scripts/UI/AutoBind"
    base_class_name: str = "UnityEngine.MonoBehaviour"
    interfaces: Tuple[TypeRef, ...] = ()
    additional_namespaces: Tuple[str, ...] = ("UnityEngine", "UnityEngine.UI")
    component_base_type: TypeRef = TypeRef("UnityEngine.Component")

    # Naming convention rules, evaluated top to bottom
    suffix_rules: Tuple[SuffixRule, ...] = DEFAULT_SUFFIX_RULES

    # Components never picked up by auto_add_components
    ignored_component_types: Tuple[TypeRef, ...] = field(
        default_factory=lambda: (
            TypeRef("UnityEngine.Transform"),
            TypeRef("UnityEngine.RectTransform"),
        )
    )

    def is_valid(self) -> bool:
        """Check that generation paths are configured."""
        return bool(self.base_path.strip())

    def has_suffix_rules(self) -> bool:
        return any(rule.suffix for rule in self.suffix_rules)

    def get_full_class_name(self, class_name: str) -> str:
        if self.namespace_name:
            return f"{self.namespace_name}.{class_name}"
        return class_name

    def get_output_directory(self) -> Path:
        directory = Path(self.base_path)
        for part in self.namespace_name.split("."):
            if part:
                directory = directory / part
        return directory

    def get_auto_generated_file_path(self, class_name: str) -> Path:
        return self.get_output_directory() / f"{class_name}{GENERATED_FILE_SUFFIX}"

    def get_manual_file_path(self, class_name: str) -> Path:
        return self.get_output_directory() / f"{class_name}{MANUAL_FILE_SUFFIX}"

    def with_rules(self, *rules: SuffixRule) -> "BindConfig":
        """Return a copy with the given rules inserted ahead of the existing ones."""
        return replace(self, suffix_rules=tuple(rules) + self.suffix_rules)

    # ============================================================
    # Serialization
    # ============================================================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "namespaceName": self.namespace_name,
            "basePath": self.base_path,
            "baseClass": self.base_class_name,
            "interfaces": [t.full_name for t in self.interfaces],
            "additionalNamespaces": list(self.additional_namespaces),
            "componentBaseType": self.component_base_type.full_name,
            "suffixConfigs": [
                {"suffix": rule.suffix, "componentType": rule.component_type.full_name}
                for rule in self.suffix_rules
            ],
            "ignoredComponentTypes": [
                t.full_name for t in self.ignored_component_types
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BindConfig":
        """
        Build a configuration from its JSON form.

        Missing keys take their default values.

        Raises:
            ConfigError: if a key has the wrong shape
        """
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a JSON object")

        defaults = cls()
        try:
            suffix_rules = defaults.suffix_rules
            if "suffixConfigs" in data:
                suffix_rules = tuple(
                    SuffixRule(
                        suffix=str(item["suffix"]),
                        component_type=TypeRef(str(item["componentType"])),
                    )
                    for item in data["suffixConfigs"]
                )

            ignored = defaults.ignored_component_types
            if "ignoredComponentTypes" in data:
                ignored = tuple(TypeRef(str(t)) for t in data["ignoredComponentTypes"])

            return cls(
                namespace_name=str(data.get("namespaceName", defaults.namespace_name)),
                base_path=str(data.get("basePath", defaults.base_path)),
                base_class_name=str(data.get("baseClass", defaults.base_class_name)),
                interfaces=tuple(TypeRef(str(t)) for t in data.get("interfaces", [])),
                additional_namespaces=tuple(
                    str(ns)
                    for ns in data.get(
                        "additionalNamespaces", defaults.additional_namespaces
                    )
                ),
                component_base_type=TypeRef(
                    str(
                        data.get(
                            "componentBaseType",
                            defaults.component_base_type.full_name,
                        )
                    )
                ),
                suffix_rules=suffix_rules,
                ignored_component_types=ignored,
            )
        except (KeyError, TypeError) as e:
            raise ConfigError(f"Malformed configuration: {e}") from e


class ConfigManager:
    """Loads, creates and replaces the configuration file."""

    @staticmethod
    def load_config(path: Union[str, Path] = CONFIG_FILE) -> Optional[BindConfig]:
        """
        Load the configuration file.

        Returns:
            The configuration, or None if the file does not exist

        Raises:
            ConfigError: if the file exists but cannot be parsed
        """
        config_path = Path(path)
        if not config_path.exists():
            return None

        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigError(f"Failed to read {config_path}: {e}") from e

        config = BindConfig.from_dict(data)
        logger.debug(
            f"Loaded {config_path} with {len(config.suffix_rules)} suffix rules"
        )
        return config

    @staticmethod
    def load_or_create_config(path: Union[str, Path] = CONFIG_FILE) -> BindConfig:
        config = ConfigManager.load_config(path)
        if config is None:
            config = ConfigManager.create_default_config(path)
        return config

    @staticmethod
    def create_default_config(path: Union[str, Path] = CONFIG_FILE) -> BindConfig:
        config = BindConfig()
        ConfigManager.save_config(config, path)
        logger.info(f"Created default configuration at {path}")
        return config

    @staticmethod
    def regenerate_config(path: Union[str, Path] = CONFIG_FILE) -> BindConfig:
        """Replace the configuration file with the defaults in one atomic step."""
        config = BindConfig()
        ConfigManager.save_config(config, path)
        logger.info(f"Regenerated configuration at {path}")
        return config

    @staticmethod
    def save_config(config: BindConfig, path: Union[str, Path] = CONFIG_FILE) -> None:
        """
        Write the configuration.

        The file is written next to its destination and moved into place, so
        readers never see a partial file.
        """
        config_path = Path(path)
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=str(config_path.parent), prefix=".autobind_", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(config.to_dict(), f, indent=2)
                os.replace(tmp_name, config_path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise ConfigError(f"Failed to write {config_path}: {e}") from e


def require_config(config: Optional[BindConfig], need_rules: bool = False) -> BindConfig:
    """
    Check a configuration before an operation starts.

    Raises:
        ConfigError: if the configuration is missing, or has no suffix rules
            when need_rules is set
    """
    if config is None:
        raise ConfigError("No binding configuration loaded")
    if need_rules and not config.has_suffix_rules():
        raise ConfigError("Add naming rules to the configuration first")
    return config
