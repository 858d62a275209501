#
# Copyright (c) Contributors to the Open 3D Engine Project.
# For complete copyright and license terms please see the LICENSE at the root of this distribution.
#
# SPDX-License-Identifier: Apache-2.0 OR MIT
#
"""
Scene tree model for UI AutoBind

Nodes carry typed components and child nodes. The resolver and the binder only
need to enumerate children, enumerate components and test a component's type,
so a host can adapt its own scene graph by producing these objects.

Usage:
    from scene_tree import Component, Scene, SceneNode, TypeRef

    root = SceneNode("Root")
    button = root.add_child(SceneNode("ConfirmButton"))
    button.add_component(Component(TypeRef("UnityEngine.UI.Button")))
"""

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

# Characters with a meaning inside a path are percent-escaped in node names
_SEGMENT_ESCAPES = {"%": "%25", "/": "%2F", "#": "%23"}
_SEGMENT_UNESCAPES = {v: k for k, v in _SEGMENT_ESCAPES.items()}
_ESCAPED_CHAR_RE = re.compile(r"%(?:25|2F|23)")
_SEGMENT_RE = re.compile(r"(?P<name>[^#]*)(?:#(?P<index>\d+))?")


def escape_segment(name: str) -> str:
    return "".join(_SEGMENT_ESCAPES.get(ch, ch) for ch in name)


def unescape_segment(text: str) -> str:
    return _ESCAPED_CHAR_RE.sub(lambda m: _SEGMENT_UNESCAPES[m.group(0)], text)


def parse_segment(segment: str) -> Optional[Tuple[str, int]]:
    """Split a path segment into (node name, sibling index), or None if malformed."""
    match = _SEGMENT_RE.fullmatch(segment)
    if match is None:
        return None
    index = int(match.group("index")) if match.group("index") else 0
    return unescape_segment(match.group("name")), index


def _pick_by_segment(nodes: Sequence["SceneNode"], segment: str) -> Optional["SceneNode"]:
    parsed = parse_segment(segment)
    if parsed is None:
        return None
    name, index = parsed
    same_name = [n for n in nodes if n.name == name]
    if index < len(same_name):
        return same_name[index]
    return None


@dataclass(frozen=True)
class TypeRef:
    """Reference to a component type by its full (namespace-qualified) name."""

    full_name: str

    @property
    def namespace(self) -> str:
        if "." not in self.full_name:
            return ""
        return self.full_name.rsplit(".", 1)[0]

    @property
    def short_name(self) -> str:
        return self.full_name.rsplit(".", 1)[-1]

    @property
    def is_qualified(self) -> bool:
        return "." in self.full_name

    def matches(self, other: "TypeRef") -> bool:
        """
        Check whether two references name the same type.

        Generated sources refer to types by short name after a using directive,
        so an unqualified reference matches any qualified one with the same
        short name.
        """
        if other is None:
            return False
        if self.is_qualified and other.is_qualified:
            return self.full_name == other.full_name
        return self.short_name == other.short_name

    def __str__(self) -> str:
        return self.full_name


class Component:
    """A typed unit of behaviour or data attached to a node."""

    def __init__(self, type_ref: TypeRef, base_types: Sequence[TypeRef] = ()):
        self.type_ref = type_ref
        self.base_types = tuple(base_types)
        self.node: Optional["SceneNode"] = None

    @property
    def type_name(self) -> str:
        return self.type_ref.full_name

    @property
    def is_alive(self) -> bool:
        return self.node is not None and self.node.is_alive

    def is_type(self, type_ref: TypeRef) -> bool:
        """Check whether this component is of the given type or derives from it."""
        if self.type_ref.matches(type_ref):
            return True
        return any(base.matches(type_ref) for base in self.base_types)

    def __repr__(self) -> str:
        node_name = self.node.name if self.node else None
        return f"<{self.type_ref.short_name} on {node_name!r}>"


class SceneNode:
    """An element of the scene tree."""

    def __init__(self, name: str):
        self.name = name
        self.parent: Optional["SceneNode"] = None
        self.scene: Optional["Scene"] = None
        self.children: List["SceneNode"] = []
        self.components: List[Component] = []
        self._destroyed = False

    @property
    def is_alive(self) -> bool:
        return not self._destroyed

    def add_child(self, child: "SceneNode") -> "SceneNode":
        if child.parent is not None:
            child.parent.children.remove(child)
        child.parent = self
        self.children.append(child)
        return child

    def add_component(self, component: Component) -> Component:
        component.node = self
        self.components.append(component)
        return component

    def remove_component(self, component: Component) -> None:
        if component in self.components:
            self.components.remove(component)
            component.node = None

    def get_component(self, type_ref: TypeRef) -> Optional[Component]:
        """Get the first component of the given type, or None."""
        for component in self.components:
            if component.is_type(type_ref):
                return component
        return None

    def get_components(self, type_ref: Optional[TypeRef] = None) -> List[Component]:
        if type_ref is None:
            return list(self.components)
        return [c for c in self.components if c.is_type(type_ref)]

    def walk(self) -> Iterator["SceneNode"]:
        """Depth-first pre-order walk of this subtree, including this node."""
        yield self
        for child in self.children:
            yield from child.walk()

    def destroy(self) -> None:
        """Detach this node from the tree and invalidate it and its subtree."""
        if self.parent is not None:
            self.parent.children.remove(self)
            self.parent = None
        elif self.scene is not None:
            self.scene.roots.remove(self)
            self.scene = None
        for node in self.walk():
            node._destroyed = True

    # ============================================================
    # Paths
    # ============================================================

    def path_segment(self) -> str:
        """
        Name of this node inside its parent.

        Siblings sharing a name are told apart by a "#n" suffix giving the
        node's position among them. "%", "/" and "#" in the name are
        percent-escaped.
        """
        segment = escape_segment(self.name)
        if self.parent is not None:
            siblings = self.parent.children
        elif self.scene is not None:
            siblings = self.scene.roots
        else:
            return segment
        same_name = [c for c in siblings if c.name == self.name]
        index = same_name.index(self)
        return segment if index == 0 else f"{segment}#{index}"

    @property
    def path(self) -> str:
        segments = []
        node: Optional[SceneNode] = self
        while node is not None:
            segments.append(node.path_segment())
            node = node.parent
        return "/".join(reversed(segments))

    def find_child(self, segment: str) -> Optional["SceneNode"]:
        return _pick_by_segment(self.children, segment)

    def __repr__(self) -> str:
        return f"<SceneNode {self.path!r}>"


class Scene:
    """A named collection of root nodes."""

    def __init__(self, name: str, roots: Optional[List[SceneNode]] = None):
        self.name = name
        self.roots: List[SceneNode] = []
        for root in roots or []:
            self.add_root(root)

    def add_root(self, node: SceneNode) -> SceneNode:
        node.scene = self
        self.roots.append(node)
        return node

    def walk(self) -> Iterator[SceneNode]:
        for root in list(self.roots):
            yield from root.walk()

    def find_by_path(self, path: str) -> Optional[SceneNode]:
        """Resolve a path produced by SceneNode.path, or return None."""
        segments = [s for s in path.split("/") if s]
        if not segments:
            return None

        node = _pick_by_segment(self.roots, segments[0])
        if node is None:
            return None
        for segment in segments[1:]:
            node = node.find_child(segment)
            if node is None:
                return None
        return node
