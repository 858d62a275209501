"""Pytest fixtures for UI AutoBind tests."""

from pathlib import Path

import pytest

from ui_autobind.autobind_owner import AutoBindOwner, BindMode
from ui_autobind.bind_config import BindConfig, SuffixRule
from ui_autobind.scene_tree import Component, Scene, SceneNode, TypeRef

BUTTON = TypeRef("UnityEngine.UI.Button")
TEXT = TypeRef("UnityEngine.UI.Text")
IMAGE = TypeRef("UnityEngine.UI.Image")
RECT_TRANSFORM = TypeRef("UnityEngine.RectTransform")


def add_widget(parent: SceneNode, name: str, *types: TypeRef) -> SceneNode:
    """Add a child node carrying one component per type."""
    node = parent.add_child(SceneNode(name))
    for type_ref in types:
        node.add_component(Component(type_ref))
    return node


@pytest.fixture
def config(tmp_path: Path) -> BindConfig:
    """Configuration writing into a temporary directory."""
    return BindConfig(
        base_path=str(tmp_path / "Generated"),
        suffix_rules=(
            SuffixRule("Button", BUTTON),
            SuffixRule("Label", TEXT),
        ),
    )


@pytest.fixture
def scene() -> Scene:
    """Scene with the tree Root{Panel{ConfirmButton, TitleLabel}}."""
    root = SceneNode("Root")
    root.add_component(Component(RECT_TRANSFORM))
    panel = root.add_child(SceneNode("Panel"))
    add_widget(panel, "ConfirmButton", BUTTON, IMAGE)
    add_widget(panel, "TitleLabel", TEXT)
    return Scene("MainMenu", [root])


@pytest.fixture
def root(scene: Scene) -> SceneNode:
    return scene.roots[0]


@pytest.fixture
def owner(root: SceneNode) -> AutoBindOwner:
    """AutoBind owner on the scene root."""
    return root.add_component(AutoBindOwner(BindMode.AUTO_SUFFIX))
