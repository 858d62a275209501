#
# Copyright (c) Contributors to the Open 3D Engine Project.
# For complete copyright and license terms please see the LICENSE at the root of this distribution.
#
# SPDX-License-Identifier: Apache-2.0 OR MIT
#
"""
Component binder for UI AutoBind

After the generated class has been compiled, the binder attaches an instance of
it to the owner's node and assigns every bound component to its field through
the compiled setter table.

Binding is best effort. A missing or mistyped field is recorded as a failure
for that entry and the remaining entries (and, in a batch, the remaining
owners) are still processed.

Usage:
    from component_binder import ComponentBinder

    binder = ComponentBinder(config, registry)
    if not binder.bind_one(owner):
        print(binder.generate_report(binder.validate_binding(owner)))
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

from .autobind_owner import AutoBindOwner, BindingEntry
from .bind_config import BindConfig, require_config
from .script_registry import CompiledScript, ScriptInstance, ScriptRegistry

logger = logging.getLogger("UIAutoBind.Binder")


class BindingStatus(Enum):
    OK = "OK"
    MISSING = "Missing"
    TYPE_MISMATCH = "TypeMismatch"


@dataclass
class BindingFailure:
    """A binding entry that could not be assigned."""

    owner_name: str
    field_name: str
    status: BindingStatus
    detail: str

    def __str__(self) -> str:
        return f"{self.owner_name}.{self.field_name}: {self.detail}"


@dataclass
class ValidationEntry:
    field_name: str
    status: BindingStatus
    detail: str = ""


@dataclass
class ValidationReport:
    """Per-entry binding status of one owner."""

    owner_name: str
    class_name: str
    script_found: bool = False
    entries: List[ValidationEntry] = field(default_factory=list)

    def count(self, status: BindingStatus) -> int:
        return sum(1 for entry in self.entries if entry.status == status)

    @property
    def is_valid(self) -> bool:
        return self.script_found and all(
            entry.status == BindingStatus.OK for entry in self.entries
        )


@dataclass
class BindingResult:
    """Result of binding several owners."""

    success_count: int = 0
    failure_count: int = 0
    failure_list: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failure_count == 0


class ComponentBinder:
    """Assigns bound components into the fields of compiled owner scripts."""

    def __init__(self, config: Optional[BindConfig], registry: ScriptRegistry):
        self.config = require_config(config)
        self.registry = registry

    # ============================================================
    # Binding
    # ============================================================

    def bind_one(self, owner: AutoBindOwner) -> bool:
        """
        Bind every entry of an owner.

        Returns:
            True only if every entry was assigned
        """
        failures = self._bind_owner(owner)
        for failure in failures:
            logger.warning(str(failure))
        if not failures:
            logger.info(f"{owner.name}: bound {len(owner.bindings)} fields")
        return not failures

    def bind_many(self, owners: Iterable[AutoBindOwner]) -> BindingResult:
        """Bind several owners; a failing owner never stops the others."""
        result = BindingResult()

        for owner in owners:
            if owner is None:
                continue

            try:
                failures = self._bind_owner(owner)
            except Exception as e:
                logger.exception(f"Binding failed for {owner.name}")
                result.failure_count += 1
                result.failure_list.append(owner.name)
                result.errors.append(f"{owner.name}: {e}")
                continue

            if failures:
                result.failure_count += 1
                result.failure_list.append(owner.name)
                result.errors.extend(str(failure) for failure in failures)
            else:
                result.success_count += 1

        logger.info(
            f"Batch bind: {result.success_count} succeeded, "
            f"{result.failure_count} failed"
        )
        return result

    def _bind_owner(self, owner: AutoBindOwner) -> List[BindingFailure]:
        script = self._find_script(owner)
        if script is None:
            return [
                BindingFailure(
                    owner.name,
                    "*",
                    BindingStatus.MISSING,
                    f"compiled class {self._full_class_name(owner)} not found",
                )
            ]

        instance = self._get_or_add_instance(owner, script)

        failures = []
        for entry in owner.bindings:
            status, detail = self._check_entry(entry, script)
            if status != BindingStatus.OK:
                failures.append(BindingFailure(owner.name, entry.field_name, status, detail))
                continue
            script.setters[entry.field_name].apply(instance, entry.resolved_target)

        return failures

    def _get_or_add_instance(
        self, owner: AutoBindOwner, script: CompiledScript
    ) -> ScriptInstance:
        """Find the script instance on the owner's node, attaching one if absent."""
        for component in owner.node.components:
            if isinstance(component, ScriptInstance) and component.script is script:
                return component

        # An instance of an older compilation of the same class is replaced
        for component in owner.node.get_components(script.type_ref):
            if isinstance(component, ScriptInstance):
                owner.node.remove_component(component)

        logger.debug(f"{owner.name}: attaching {script.full_name}")
        return owner.node.add_component(script.create_instance())

    # ============================================================
    # Validation
    # ============================================================

    def validate_binding(self, owner: AutoBindOwner) -> ValidationReport:
        """Classify every entry of an owner without assigning anything."""
        script = self._find_script(owner)
        report = ValidationReport(
            owner_name=owner.name,
            class_name=self._full_class_name(owner),
            script_found=script is not None,
        )

        for entry in owner.bindings:
            if script is None:
                report.entries.append(
                    ValidationEntry(
                        entry.field_name,
                        BindingStatus.MISSING,
                        "class not compiled",
                    )
                )
                continue

            status, detail = self._check_entry(entry, script)
            report.entries.append(ValidationEntry(entry.field_name, status, detail))

        return report

    def generate_report(self, report: ValidationReport) -> str:
        """Render a validation report as text."""
        lines = [f"AutoBind validation: {report.owner_name} ({report.class_name})"]
        if not report.script_found:
            lines.append("  Compiled class not found. Generate code and wait for compilation.")

        lines.append(f"  OK:           {report.count(BindingStatus.OK)}")
        lines.append(f"  Missing:      {report.count(BindingStatus.MISSING)}")
        lines.append(f"  TypeMismatch: {report.count(BindingStatus.TYPE_MISMATCH)}")

        if report.entries:
            lines.append("")
            width = max(len(entry.field_name) for entry in report.entries)
            for entry in report.entries:
                line = f"  [{entry.status.value}] {entry.field_name.ljust(width)}"
                if entry.detail:
                    line += f"  {entry.detail}"
                lines.append(line.rstrip())

        lines.append("")
        lines.append("Result: " + ("valid" if report.is_valid else "has problems"))
        return "\n".join(lines)

    # ============================================================
    # Helper Methods
    # ============================================================

    def _check_entry(self, entry: BindingEntry, script: CompiledScript):
        setter = script.setters.get(entry.field_name)
        if setter is None:
            return BindingStatus.MISSING, "no generated field"

        target = entry.resolved_target
        if target is None or not target.is_alive:
            return BindingStatus.MISSING, "no bound component"

        if not setter.accepts(target):
            return (
                BindingStatus.TYPE_MISMATCH,
                f"field is {setter.declared_type.short_name}, "
                f"component is {target.type_ref.short_name}",
            )

        return BindingStatus.OK, f"{target.type_ref.short_name} on {target.node.path}"

    def _find_script(self, owner: AutoBindOwner) -> Optional[CompiledScript]:
        return self.registry.find(self._full_class_name(owner))

    def _full_class_name(self, owner: AutoBindOwner) -> str:
        return self.config.get_full_class_name(owner.class_name)
