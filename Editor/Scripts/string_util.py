#
# Copyright (c) Contributors to the Open 3D Engine Project.
# For complete copyright and license terms please see the LICENSE at the root of this distribution.
#
# SPDX-License-Identifier: Apache-2.0 OR MIT
#
"""
String helpers shared by the resolver, the code generator and the binder.

Class and field names end up as C# identifiers, so everything derived from a
node name passes through here first.
"""

import re
from typing import Iterable, Dict

DEFAULT_CLASS_NAME = "AutoBindUI"

# C# reserved keywords that need escaping with @
CSHARP_KEYWORDS = {
    "abstract",
    "as",
    "base",
    "bool",
    "break",
    "byte",
    "case",
    "catch",
    "char",
    "checked",
    "class",
    "const",
    "continue",
    "decimal",
    "default",
    "delegate",
    "do",
    "double",
    "else",
    "enum",
    "event",
    "explicit",
    "extern",
    "false",
    "finally",
    "fixed",
    "float",
    "for",
    "foreach",
    "goto",
    "if",
    "implicit",
    "in",
    "int",
    "interface",
    "internal",
    "is",
    "lock",
    "long",
    "namespace",
    "new",
    "null",
    "object",
    "operator",
    "out",
    "override",
    "params",
    "private",
    "protected",
    "public",
    "readonly",
    "ref",
    "return",
    "sbyte",
    "sealed",
    "short",
    "sizeof",
    "stackalloc",
    "static",
    "string",
    "struct",
    "switch",
    "this",
    "throw",
    "true",
    "try",
    "typeof",
    "uint",
    "ulong",
    "unchecked",
    "unsafe",
    "ushort",
    "using",
    "virtual",
    "void",
    "volatile",
    "while",
}

# Unicode letters and digits are valid in C# identifiers
_IDENTIFIER_RE = re.compile(r"(?!\d)\w+")
_NON_IDENTIFIER_CHARS_RE = re.compile(r"\W")


def is_valid_identifier(name: str) -> bool:
    """Check that a name can be used as a C# identifier (after keyword escaping)."""
    if not name:
        return False
    if name.startswith("@"):
        name = name[1:]
    return bool(_IDENTIFIER_RE.fullmatch(name))


def make_safe_name(name: str) -> str:
    """Make a name safe for C# (escape keywords)."""
    if name in CSHARP_KEYWORDS:
        return f"@{name}"
    return name


def strip_invalid_chars(name: str) -> str:
    """Remove every character that cannot appear in an identifier."""
    return _NON_IDENTIFIER_CHARS_RE.sub("", name or "")


def get_safe_class_name(node_name: str) -> str:
    """
    Get a class name from a node name.

    Invalid characters and spaces are dropped and the first letter is upper-cased.
    A name that starts with a digit gets a leading underscore; an empty result
    falls back to DEFAULT_CLASS_NAME.
    """
    class_name = strip_invalid_chars(node_name)
    if not class_name:
        return DEFAULT_CLASS_NAME

    class_name = class_name[0].upper() + class_name[1:]
    if class_name[0].isdigit():
        class_name = f"_{class_name}"
    return class_name


def to_camel_case(name: str) -> str:
    """Lower-case the first letter."""
    if not name:
        return name
    return name[0].lower() + name[1:]


def to_field_name(name: str) -> str:
    """Turn an arbitrary fragment of a node name into a field identifier."""
    field_name = to_camel_case(strip_invalid_chars(name))
    if field_name and field_name[0].isdigit():
        field_name = f"_{field_name}"
    return field_name


def type_display_names(full_names: Iterable[str]) -> Dict[str, str]:
    """
    Map full type names to the name emitted in source.

    Short names are used unless two different types share one, in which case
    the colliding types keep their fully qualified names.
    """
    by_short: Dict[str, set] = {}
    for full_name in full_names:
        short_name = full_name.rsplit(".", 1)[-1]
        by_short.setdefault(short_name, set()).add(full_name)

    result = {}
    for short_name, owners in by_short.items():
        for full_name in owners:
            result[full_name] = short_name if len(owners) == 1 else full_name
    return result
