#
# Copyright (c) Contributors to the Open 3D Engine Project.
# For complete copyright and license terms please see the LICENSE at the root of this distribution.
#
# SPDX-License-Identifier: Apache-2.0 OR MIT
#
"""
Scene persistence and stable identifiers for UI AutoBind

Scenes are stored as JSON. Owner bindings refer to their targets by node path
and component type, so a scene read back from disk has the same bindings as
the one that was saved.

Object references do not survive a reload of the compiled code; the ids from
SceneObjectIds do. An id is the scene name plus the owner node's path, and is
resolved against whatever Scene object is current when it is read back.

Usage:
    from scene_loader import SceneObjectIds, load_scene

    scene = load_scene("MainMenu.scene.json")
    ids = SceneObjectIds(scene)
    owner_id = ids.id_of(owner)
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .autobind_owner import OWNER_TYPE, AutoBindOwner, BindMode
from .scene_tree import Component, Scene, SceneNode, TypeRef
from .script_registry import ScriptInstance

logger = logging.getLogger("UIAutoBind.SceneLoader")

ID_SEPARATOR = "::"


class SceneFormatError(Exception):
    """A scene file could not be read."""


# ============================================================
# Loading
# ============================================================


def load_scene(path: Union[str, Path]) -> Scene:
    """
    Load a scene from a JSON file.

    Raises:
        SceneFormatError: if the file cannot be read or has the wrong shape
    """
    scene_path = Path(path)
    try:
        data = json.loads(scene_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise SceneFormatError(f"Failed to read {scene_path}: {e}") from e

    return scene_from_dict(data, default_name=scene_path.name.split(".")[0])


def scene_from_dict(data: Dict[str, Any], default_name: str = "Scene") -> Scene:
    if not isinstance(data, dict):
        raise SceneFormatError("Scene must be a JSON object")

    scene = Scene(str(data.get("name", default_name)))
    pending: List[Tuple[AutoBindOwner, List[Dict[str, Any]]]] = []

    try:
        for node_data in data.get("nodes", []):
            scene.add_root(_node_from_dict(node_data, pending))

        # Targets may live anywhere in the scene, so bindings are linked last
        for owner, bindings in pending:
            for binding in bindings:
                _link_binding(scene, owner, binding)
    except (KeyError, TypeError, ValueError) as e:
        raise SceneFormatError(f"Malformed scene: {e}") from e

    logger.debug(f"Loaded scene {scene.name} with {len(pending)} owners")
    return scene


def _node_from_dict(
    data: Dict[str, Any], pending: List[Tuple[AutoBindOwner, List[Dict[str, Any]]]]
) -> SceneNode:
    node = SceneNode(str(data["name"]))

    for component_data in data.get("components", []):
        type_name = str(component_data["type"])
        if TypeRef(type_name) == OWNER_TYPE:
            owner = AutoBindOwner(
                bind_mode=BindMode(component_data.get("bindMode", BindMode.AUTO_SUFFIX.value)),
                custom_class_name=str(component_data.get("customClassName", "")),
            )
            node.add_component(owner)
            pending.append((owner, component_data.get("bindings", [])))
        else:
            base_types = [TypeRef(str(t)) for t in component_data.get("baseTypes", [])]
            node.add_component(Component(TypeRef(type_name), base_types))

    for child_data in data.get("children", []):
        node.add_child(_node_from_dict(child_data, pending))

    return node


def _link_binding(scene: Scene, owner: AutoBindOwner, data: Dict[str, Any]) -> None:
    field_name = str(data["fieldName"])
    declared = data.get("declaredType")
    declared_type = TypeRef(str(declared)) if declared else None

    target = None
    target_path = data.get("targetPath")
    if target_path:
        target_node = scene.find_by_path(str(target_path))
        if target_node is not None:
            candidates = target_node.get_components(TypeRef(str(data["targetType"])))
            index = int(data.get("targetIndex", 0))
            if index < len(candidates):
                target = candidates[index]
        if target is None:
            logger.warning(
                f"{owner.name}: binding '{field_name}' target {target_path} not found"
            )

    owner.add_binding(target, field_name, declared_type)


# ============================================================
# Saving
# ============================================================


def save_scene(scene: Scene, path: Union[str, Path]) -> None:
    scene_path = Path(path)
    scene_path.parent.mkdir(parents=True, exist_ok=True)
    scene_path.write_text(
        json.dumps(scene_to_dict(scene), indent=2) + "\n", encoding="utf-8"
    )
    logger.info(f"Saved scene {scene.name} to {scene_path}")


def scene_to_dict(scene: Scene) -> Dict[str, Any]:
    return {
        "name": scene.name,
        "nodes": [_node_to_dict(root) for root in scene.roots],
    }


def _node_to_dict(node: SceneNode) -> Dict[str, Any]:
    components = []
    for component in node.components:
        # Script instances are recreated by binding
        if isinstance(component, ScriptInstance):
            continue
        if isinstance(component, AutoBindOwner):
            components.append(_owner_to_dict(component))
            continue

        component_data: Dict[str, Any] = {"type": component.type_name}
        if component.base_types:
            component_data["baseTypes"] = [t.full_name for t in component.base_types]
        components.append(component_data)

    data: Dict[str, Any] = {"name": node.name}
    if components:
        data["components"] = components
    if node.children:
        data["children"] = [_node_to_dict(child) for child in node.children]
    return data


def _owner_to_dict(owner: AutoBindOwner) -> Dict[str, Any]:
    bindings = []
    for entry in owner.bindings:
        binding: Dict[str, Any] = {"fieldName": entry.field_name}
        if entry.declared_type is not None:
            binding["declaredType"] = entry.declared_type.full_name

        target = entry.resolved_target
        if target is not None and target.is_alive:
            same_type = [
                c for c in target.node.components if c.type_ref == target.type_ref
            ]
            binding["targetPath"] = target.node.path
            binding["targetType"] = target.type_name
            binding["targetIndex"] = same_type.index(target)
        bindings.append(binding)

    data: Dict[str, Any] = {
        "type": OWNER_TYPE.full_name,
        "bindMode": owner.bind_mode.value,
        "bindings": bindings,
    }
    if owner.custom_class_name:
        data["customClassName"] = owner.custom_class_name
    return data


# ============================================================
# Queries and identifiers
# ============================================================


def find_owners(scene: Scene) -> List[AutoBindOwner]:
    """All AutoBind owners of a scene in tree order."""
    owners = []
    for node in scene.walk():
        owners.extend(c for c in node.components if isinstance(c, AutoBindOwner))
    return owners


class SceneObjectIds:
    """Stable owner identifiers within one scene."""

    def __init__(self, scene: Scene):
        self.scene = scene

    def id_of(self, owner: AutoBindOwner) -> str:
        if owner.node is None:
            raise ValueError("Owner is not attached to a node")
        return f"{self.scene.name}{ID_SEPARATOR}{owner.node.path}"

    def resolve_id(self, object_id: str) -> Optional[AutoBindOwner]:
        """Find the owner an id refers to, or None if it no longer exists."""
        prefix = f"{self.scene.name}{ID_SEPARATOR}"
        if not object_id.startswith(prefix):
            return None

        node = self.scene.find_by_path(object_id[len(prefix):])
        if node is None or not node.is_alive:
            return None

        for component in node.components:
            if isinstance(component, AutoBindOwner):
                return component
        return None
