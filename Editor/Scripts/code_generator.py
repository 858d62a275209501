#
# Copyright (c) Contributors to the Open 3D Engine Project.
# For complete copyright and license terms please see the LICENSE at the root of this distribution.
#
# SPDX-License-Identifier: Apache-2.0 OR MIT
#
"""
C# code generator for UI AutoBind

Every owner produces two partial-class files:

- <Class>.AutoBind.cs: owned by the generator and rewritten on every run. It
  declares one field per binding and the AutoBindSetters table mapping each
  field name to a typed assignment.
- <Class>.cs: the hand-written half. It is created once, when missing, and
  never opened for writing again.

Output is deterministic: the same bindings and configuration always produce
byte-identical generated files.

Usage:
    from code_generator import CodeGenerator

    generator = CodeGenerator(config)
    result = generator.generate(owner)
    print(result.generated_path, result.manual_path)
"""

import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .autobind_owner import AutoBindOwner, BindingEntry
from .bind_config import BindConfig, ConfigError, require_config
from .scene_tree import TypeRef
from .string_util import (
    CSHARP_KEYWORDS,
    is_valid_identifier,
    make_safe_name,
    type_display_names,
)

logger = logging.getLogger("UIAutoBind.CodeGenerator")

SETTER_TABLE_NAME = "AutoBindSetters"

_REQUIRED_USINGS = ("System", "System.Collections.Generic")


class GenerationError(Exception):
    """Code for an owner could not be generated."""


@dataclass
class GeneratedFile:
    """Represents a generated C# file."""

    path: Path
    content: str
    checksum: str = ""

    def __post_init__(self):
        if not self.checksum:
            self.checksum = hashlib.md5(self.content.encode("utf-8")).hexdigest()


@dataclass
class GenerationResult:
    """Result of generating the code for one owner."""

    owner_name: str
    class_name: str
    full_class_name: str
    generated_path: Path
    manual_path: Path
    field_count: int = 0
    generated_written: bool = False
    manual_created: bool = False

    # Field name to declared type, in binding order
    field_types: Dict[str, TypeRef] = field(default_factory=dict)


class CodeGenerator:
    """Generates the partial-class pair for an AutoBind owner."""

    def __init__(self, config: Optional[BindConfig]):
        self.config = config

    # ============================================================
    # Main Generation Methods
    # ============================================================

    def generate(
        self,
        owner: AutoBindOwner,
        bindings: Optional[List[BindingEntry]] = None,
    ) -> GenerationResult:
        """
        Generate and write the code for an owner.

        Args:
            owner: The owner to generate a class for
            bindings: Entries to emit; defaults to the owner's valid bindings

        Returns:
            GenerationResult with the two file paths

        Raises:
            GenerationError: on an invalid path or identifier, or an I/O failure
        """
        config = self._require_config()
        if bindings is None:
            bindings = owner.get_valid_bindings()

        class_name = self._validate_class_name(owner.class_name)
        self._validate_namespace(config.namespace_name)
        field_types = self._collect_field_types(bindings)

        generated = GeneratedFile(
            path=config.get_auto_generated_file_path(class_name),
            content=self.generate_auto_file_content(class_name, field_types),
        )
        manual = GeneratedFile(
            path=config.get_manual_file_path(class_name),
            content=self.generate_manual_file_content(class_name),
        )

        result = GenerationResult(
            owner_name=owner.name,
            class_name=class_name,
            full_class_name=config.get_full_class_name(class_name),
            generated_path=generated.path,
            manual_path=manual.path,
            field_count=len(field_types),
            field_types=field_types,
        )

        try:
            generated.path.parent.mkdir(parents=True, exist_ok=True)
            result.generated_written = self._write_generated(generated)
            result.manual_created = self._create_manual(manual)
        except OSError as e:
            raise GenerationError(f"Failed to write code for {owner.name}: {e}") from e

        logger.info(
            f"Generated {class_name}: {len(field_types)} fields "
            f"(manual file {'created' if result.manual_created else 'kept'})"
        )
        return result

    def generate_auto_file_content(
        self, class_name: str, field_types: Dict[str, TypeRef]
    ) -> str:
        """Build the text of the regenerable half of the class."""
        config = self._require_config()

        all_types = list(field_types.values()) + [config.component_base_type]
        if config.base_class_name:
            all_types.append(TypeRef(config.base_class_name))
        all_types.extend(config.interfaces)
        names = type_display_names(t.full_name for t in all_types)

        content = []
        content.append(self._generate_file_header(class_name))
        content.append("")
        content.append(self._generate_usings(all_types, names))
        content.append("")

        indent = self._open_namespace(content)
        ind = self._indent(indent)

        # Class declaration
        bases = []
        if config.base_class_name:
            bases.append(names[config.base_class_name])
        bases.extend(names[t.full_name] for t in config.interfaces)
        base_clause = f" : {', '.join(bases)}" if bases else ""

        content.append(f"{ind}public partial class {class_name}{base_clause}")
        content.append(f"{ind}{{")

        # Fields
        for field_name, type_ref in field_types.items():
            content.append(
                f"{ind}    public {names[type_ref.full_name]} {make_safe_name(field_name)};"
            )
        if field_types:
            content.append("")

        # Setter table
        component_type = names[config.component_base_type.full_name]
        table_type = f"Dictionary<string, Action<{class_name}, {component_type}>>"
        content.append(f"{ind}    internal static readonly {table_type} {SETTER_TABLE_NAME} =")
        content.append(f"{ind}        new {table_type}")
        content.append(f"{ind}        {{")
        for field_name, type_ref in field_types.items():
            safe_name = make_safe_name(field_name)
            content.append(
                f'{ind}            {{ "{field_name}", (self, value) => '
                f"self.{safe_name} = ({names[type_ref.full_name]})value }},"
            )
        content.append(f"{ind}        }};")

        content.append(f"{ind}}}")
        self._close_namespace(content)

        return "\n".join(content) + "\n"

    def generate_manual_file_content(self, class_name: str) -> str:
        """Build the initial text of the hand-written half of the class."""
        config = self._require_config()

        content = []
        usings = sorted(set(config.additional_namespaces))
        if usings:
            content.extend(f"using {ns};" for ns in usings)
            content.append("")

        indent = self._open_namespace(content)
        ind = self._indent(indent)

        content.append(f"{ind}public partial class {class_name}")
        content.append(f"{ind}{{")
        content.append(
            f"{ind}    // Bound fields are declared in {class_name}.AutoBind.cs"
        )
        content.append(f"{ind}}}")
        self._close_namespace(content)

        return "\n".join(content) + "\n"

    # ============================================================
    # File Writing
    # ============================================================

    def _write_generated(self, generated_file: GeneratedFile) -> bool:
        """Write the generated file unless it already has identical content."""
        file_path = generated_file.path
        if file_path.exists():
            existing_checksum = hashlib.md5(file_path.read_bytes()).hexdigest()
            if existing_checksum == generated_file.checksum:
                logger.debug(f"Unchanged: {file_path}")
                return False

        file_path.write_text(generated_file.content, encoding="utf-8", newline="\n")
        logger.debug(f"Wrote: {file_path}")
        return True

    def _create_manual(self, manual_file: GeneratedFile) -> bool:
        """Create the manual file if it does not exist yet."""
        file_path = manual_file.path
        if file_path.exists():
            return False

        try:
            with open(file_path, "x", encoding="utf-8", newline="\n") as f:
                f.write(manual_file.content)
        except FileExistsError:
            return False

        logger.debug(f"Created: {file_path}")
        return True

    # ============================================================
    # Validation
    # ============================================================

    def _require_config(self) -> BindConfig:
        try:
            config = require_config(self.config)
        except ConfigError as e:
            raise GenerationError(str(e)) from e
        if not config.is_valid():
            raise GenerationError("No output path configured (basePath is empty)")
        return config

    def _validate_class_name(self, class_name: str) -> str:
        if not is_valid_identifier(class_name) or class_name.startswith("@"):
            raise GenerationError(f"Invalid class name: {class_name!r}")
        if class_name in CSHARP_KEYWORDS:
            raise GenerationError(f"Class name is a C# keyword: {class_name!r}")
        return class_name

    def _validate_namespace(self, namespace: str) -> None:
        if not namespace:
            return
        for part in namespace.split("."):
            if not is_valid_identifier(part) or part in CSHARP_KEYWORDS:
                raise GenerationError(f"Invalid namespace: {namespace!r}")

    def _collect_field_types(self, bindings: List[BindingEntry]) -> Dict[str, TypeRef]:
        field_types: Dict[str, TypeRef] = {}
        for entry in bindings:
            if not is_valid_identifier(entry.field_name) or entry.field_name.startswith("@"):
                raise GenerationError(f"Invalid field name: {entry.field_name!r}")
            if entry.field_name in field_types:
                raise GenerationError(f"Duplicate field name: {entry.field_name!r}")

            declared_type = entry.declared_type
            if declared_type is None and entry.resolved_target is not None:
                declared_type = entry.resolved_target.type_ref
            if declared_type is None:
                raise GenerationError(
                    f"Field {entry.field_name!r} has no declared type"
                )
            field_types[entry.field_name] = declared_type
        return field_types

    # ============================================================
    # Helper Methods
    # ============================================================

    def _generate_file_header(self, class_name: str) -> str:
        """Generate file header comment."""
        return f"""//------------------------------------------------------------------------------
// <auto-generated>
//     This code was generated by UI AutoBind.
//
//     Changes to this file are lost when it is regenerated.
//     Put hand-written code in {class_name}.cs instead.
// </auto-generated>
//------------------------------------------------------------------------------"""

    def _generate_usings(self, types: List[TypeRef], names: Dict[str, str]) -> str:
        """Generate sorted using statements for every type emitted by short name."""
        config = self._require_config()
        namespaces = set(_REQUIRED_USINGS)
        namespaces.update(config.additional_namespaces)
        for type_ref in types:
            if type_ref.namespace and names[type_ref.full_name] == type_ref.short_name:
                namespaces.add(type_ref.namespace)
        namespaces.discard(config.namespace_name)
        namespaces.discard("")
        return "\n".join(f"using {ns};" for ns in sorted(namespaces))

    def _open_namespace(self, content: List[str]) -> int:
        if not self.config.namespace_name:
            return 0
        content.append(f"namespace {self.config.namespace_name}")
        content.append("{")
        return 1

    def _close_namespace(self, content: List[str]) -> None:
        if self.config.namespace_name:
            content.append("}")

    def _indent(self, level: int) -> str:
        """Generate indentation string."""
        return "    " * level
