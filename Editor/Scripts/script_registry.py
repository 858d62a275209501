#
# Copyright (c) Contributors to the Open 3D Engine Project.
# For complete copyright and license terms please see the LICENSE at the root of this distribution.
#
# SPDX-License-Identifier: Apache-2.0 OR MIT
#
"""
Compiled script registry for UI AutoBind

The binder never looks fields up by reflection. Each compiled script exposes
the setter table written by the code generator: one FieldSetter handle per
field, carrying the declared type and the assignment to perform.

A host that compiles the generated sources registers the resulting scripts
here. Without a compiler, load_generated_sources() reads the setter tables
straight out of the generated files, which is what the command line tool and
the tests do. clear() drops every compiled script, as a reload does.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from .bind_config import GENERATED_FILE_SUFFIX, BindConfig
from .code_generator import SETTER_TABLE_NAME
from .scene_tree import Component, TypeRef

logger = logging.getLogger("UIAutoBind.ScriptRegistry")

_NAMESPACE_RE = re.compile(r"^\s*namespace\s+([\w.]+)", re.MULTILINE)
_CLASS_RE = re.compile(r"\bpartial\s+class\s+(\w+)")
_FIELD_RE = re.compile(r"^\s*public\s+([\w.]+)\s+(@?\w+)\s*;", re.MULTILINE)
_SETTER_RE = re.compile(
    r'\{\s*"(\w+)",\s*\(self,\s*value\)\s*=>\s*self\.(@?\w+)\s*=\s*\(([\w.]+)\)value\s*\}'
)


class ScriptCompileError(Exception):
    """A generated source could not be turned into a compiled script."""


@dataclass(frozen=True)
class FieldSetter:
    """Typed assignment handle for one generated field."""

    field_name: str
    declared_type: TypeRef
    setter: Callable[["ScriptInstance", Component], None]

    def accepts(self, component: Component) -> bool:
        return component.is_type(self.declared_type)

    def apply(self, instance: "ScriptInstance", component: Component) -> None:
        self.setter(instance, component)


@dataclass
class CompiledScript:
    """A compiled owner class and its setter table."""

    full_name: str
    setters: Dict[str, FieldSetter] = field(default_factory=dict)
    source_path: Optional[Path] = None

    @property
    def type_ref(self) -> TypeRef:
        return TypeRef(self.full_name)

    def create_instance(self) -> "ScriptInstance":
        return ScriptInstance(self)


class ScriptInstance(Component):
    """An instance of a compiled script attached to an owner's node."""

    def __init__(self, script: CompiledScript):
        super().__init__(script.type_ref)
        self.script = script
        self.values: Dict[str, Optional[Component]] = {
            name: None for name in script.setters
        }

    def get_field(self, field_name: str) -> Optional[Component]:
        return self.values.get(field_name)


def _make_setter(field_name: str) -> Callable[[ScriptInstance, Component], None]:
    def assign(instance: ScriptInstance, component: Component) -> None:
        instance.values[field_name] = component

    return assign


class ScriptRegistry:
    """Compiled scripts by full class name."""

    def __init__(self):
        self._scripts: Dict[str, CompiledScript] = {}

    def register(self, script: CompiledScript) -> None:
        self._scripts[script.full_name] = script

    def find(self, full_name: str) -> Optional[CompiledScript]:
        return self._scripts.get(full_name)

    def clear(self) -> None:
        self._scripts.clear()

    def __contains__(self, full_name: str) -> bool:
        return full_name in self._scripts

    def __len__(self) -> int:
        return len(self._scripts)

    # ============================================================
    # Loading from generated sources
    # ============================================================

    def compile_source(
        self, content: str, source_path: Optional[Path] = None
    ) -> CompiledScript:
        """
        Build and register a compiled script from a generated source.

        Raises:
            ScriptCompileError: if the source has no class, no setter table, or
                a setter for a field it does not declare
        """
        class_match = _CLASS_RE.search(content)
        if not class_match:
            raise ScriptCompileError(f"No partial class found in {source_path}")
        if SETTER_TABLE_NAME not in content:
            raise ScriptCompileError(f"No {SETTER_TABLE_NAME} table in {source_path}")

        namespace_match = _NAMESPACE_RE.search(content)
        class_name = class_match.group(1)
        full_name = (
            f"{namespace_match.group(1)}.{class_name}" if namespace_match else class_name
        )

        declared = {
            name.lstrip("@"): type_name for type_name, name in _FIELD_RE.findall(content)
        }

        script = CompiledScript(full_name=full_name, source_path=source_path)
        for field_name, member, type_name in _SETTER_RE.findall(content):
            if member.lstrip("@") not in declared:
                raise ScriptCompileError(
                    f"{full_name}: setter for undeclared field '{field_name}'"
                )
            script.setters[field_name] = FieldSetter(
                field_name=field_name,
                declared_type=TypeRef(type_name),
                setter=_make_setter(field_name),
            )

        self.register(script)
        logger.debug(f"Compiled {full_name} with {len(script.setters)} fields")
        return script

    def compile_file(self, path: Union[str, Path]) -> CompiledScript:
        source_path = Path(path)
        try:
            content = source_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ScriptCompileError(f"Failed to read {source_path}: {e}") from e
        return self.compile_source(content, source_path)

    def load_generated_sources(self, config: BindConfig) -> int:
        """
        Compile every generated file under the configured output directory.

        Files that fail to compile are logged and skipped.

        Returns:
            Number of scripts compiled
        """
        output_dir = config.get_output_directory()
        if not output_dir.exists():
            return 0

        compiled = 0
        for source_path in sorted(output_dir.glob(f"*{GENERATED_FILE_SUFFIX}")):
            try:
                self.compile_file(source_path)
                compiled += 1
            except ScriptCompileError as e:
                logger.warning(str(e))

        logger.info(f"Loaded {compiled} compiled scripts from {output_dir}")
        return compiled
