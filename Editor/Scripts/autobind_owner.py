#
# Copyright (c) Contributors to the Open 3D Engine Project.
# For complete copyright and license terms please see the LICENSE at the root of this distribution.
#
# SPDX-License-Identifier: Apache-2.0 OR MIT
#
"""
AutoBind owner component

The owner sits on the root node of a UI subtree and holds the list of
field-to-component bindings that the code generator turns into a class.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .scene_tree import Component, TypeRef
from .string_util import get_safe_class_name, is_valid_identifier

logger = logging.getLogger("UIAutoBind.Owner")

OWNER_TYPE = TypeRef("UIAutoBind.UiAutoBind")


class BindMode(Enum):
    """How bindings are collected for an owner."""

    MANUAL = "Manual"
    AUTO_SUFFIX = "AutoSuffix"
    HYBRID = "Hybrid"

    @property
    def description(self) -> str:
        return _BIND_MODE_DESCRIPTIONS[self]


_BIND_MODE_DESCRIPTIONS = {
    BindMode.MANUAL: "Bindings are added by hand. Use this for precise control.",
    BindMode.AUTO_SUFFIX: (
        "Child nodes are scanned recursively and bound by their name suffix. "
        "Use this for panels with many widgets."
    ),
    BindMode.HYBRID: (
        "Manual bindings and suffix scanning can be mixed. "
        "Suffix scanning skips components that are already bound."
    ),
}


@dataclass
class BindingEntry:
    """One field-to-component mapping of an owner."""

    field_name: str
    resolved_target: Optional[Component] = None
    declared_type: Optional[TypeRef] = None

    def __post_init__(self):
        if self.declared_type is None and self.resolved_target is not None:
            self.declared_type = self.resolved_target.type_ref

    @property
    def is_valid(self) -> bool:
        """A valid entry has a field name and a live target."""
        return (
            bool(self.field_name)
            and self.resolved_target is not None
            and self.resolved_target.is_alive
        )


class AutoBindOwner(Component):
    """
    Root of a binding configuration.

    Field names are unique within an owner (case-sensitive) and entries keep
    their insertion order, which is also the order of the generated fields.
    """

    def __init__(
        self,
        bind_mode: BindMode = BindMode.AUTO_SUFFIX,
        custom_class_name: str = "",
    ):
        super().__init__(OWNER_TYPE)
        self.bind_mode = bind_mode
        self.custom_class_name = custom_class_name
        self.bindings: List[BindingEntry] = []

    @property
    def name(self) -> str:
        return self.node.name if self.node else ""

    @property
    def class_name(self) -> str:
        """Custom class name if set, else a class name derived from the node name."""
        if self.custom_class_name:
            return self.custom_class_name
        return get_safe_class_name(self.name)

    def get_bind_mode_description(self) -> str:
        return self.bind_mode.description

    # ============================================================
    # Binding List
    # ============================================================

    def add_binding(
        self,
        component: Optional[Component],
        field_name: str,
        declared_type: Optional[TypeRef] = None,
    ) -> BindingEntry:
        """
        Append a binding.

        A field name that is already taken gets the lowest free numeric suffix
        starting at 2.

        Raises:
            ValueError: if field_name is not a valid identifier
        """
        if not is_valid_identifier(field_name):
            raise ValueError(f"Invalid field name: {field_name!r}")

        unique_name = self._make_unique_field_name(field_name)
        if unique_name != field_name:
            logger.debug(
                f"{self.name}: field '{field_name}' already bound, using '{unique_name}'"
            )

        entry = BindingEntry(
            field_name=unique_name,
            resolved_target=component,
            declared_type=declared_type,
        )
        self.bindings.append(entry)
        return entry

    def remove_binding(self, entry: Optional[BindingEntry]) -> bool:
        if entry is None or entry not in self.bindings:
            return False
        self.bindings.remove(entry)
        return True

    def remove_binding_by_name(self, field_name: str) -> bool:
        return self.remove_binding(self.find_binding(field_name))

    def find_binding(self, field_name: str) -> Optional[BindingEntry]:
        for entry in self.bindings:
            if entry.field_name == field_name:
                return entry
        return None

    def is_bound(self, component: Component) -> bool:
        """Check whether a binding already targets this exact component."""
        return any(entry.resolved_target is component for entry in self.bindings)

    def get_valid_bindings(self) -> List[BindingEntry]:
        return [entry for entry in self.bindings if entry.is_valid]

    def clear_bindings(self) -> None:
        self.bindings.clear()

    def auto_add_components(
        self, ignored_types: Optional[List[TypeRef]] = None
    ) -> int:
        """
        Bind every component on the owner's own node.

        The owner itself and components of an ignored type are skipped, as are
        components that are already bound. Field names are the camel-cased
        type names.

        Returns:
            Number of bindings added
        """
        if self.node is None:
            return 0

        ignored_types = ignored_types or []
        added = 0
        for component in self.node.components:
            if component is self or isinstance(component, AutoBindOwner):
                continue
            if any(component.is_type(t) for t in ignored_types):
                continue
            if self.is_bound(component):
                continue

            type_name = component.type_ref.short_name
            field_name = type_name[0].lower() + type_name[1:]
            self.add_binding(component, field_name)
            added += 1

        return added

    def _make_unique_field_name(self, field_name: str) -> str:
        taken = {entry.field_name for entry in self.bindings}
        if field_name not in taken:
            return field_name

        index = 2
        while f"{field_name}{index}" in taken:
            index += 1
        return f"{field_name}{index}"

    def __repr__(self) -> str:
        return f"<AutoBindOwner {self.name!r} ({len(self.bindings)} bindings)>"
