"""Tests for the compiled script registry."""

from pathlib import Path

import pytest

from ui_autobind.autobind_owner import AutoBindOwner
from ui_autobind.bind_config import BindConfig
from ui_autobind.code_generator import CodeGenerator
from ui_autobind.naming_resolver import NamingRuleResolver
from ui_autobind.scene_tree import Component, SceneNode, TypeRef
from ui_autobind.script_registry import ScriptCompileError, ScriptRegistry

from conftest import BUTTON, TEXT


@pytest.fixture
def generated_source(root: SceneNode, owner: AutoBindOwner, config: BindConfig) -> Path:
    NamingRuleResolver().resolve(root, owner, config)
    return CodeGenerator(config).generate(owner).generated_path


class TestCompileSource:
    def test_setter_table_is_read(self, generated_source: Path) -> None:
        registry = ScriptRegistry()
        script = registry.compile_file(generated_source)

        assert script.full_name == "UI.Root"
        assert list(script.setters) == ["confirm", "title"]
        assert script.setters["confirm"].declared_type == TypeRef("Button")
        assert registry.find("UI.Root") is script
        assert "UI.Root" in registry

    def test_setter_accepts_matching_component(self, generated_source: Path) -> None:
        setter = ScriptRegistry().compile_file(generated_source).setters["confirm"]
        assert setter.accepts(Component(BUTTON))
        assert not setter.accepts(Component(TEXT))

    def test_setter_assigns_field(self, generated_source: Path) -> None:
        script = ScriptRegistry().compile_file(generated_source)
        instance = script.create_instance()
        button = Component(BUTTON)

        script.setters["confirm"].apply(instance, button)

        assert instance.get_field("confirm") is button
        assert instance.get_field("title") is None
        assert instance.type_ref == TypeRef("UI.Root")

    def test_keyword_field(self, owner: AutoBindOwner, config: BindConfig) -> None:
        owner.add_binding(owner.node.add_component(Component(BUTTON)), "event")
        path = CodeGenerator(config).generate(owner).generated_path

        script = ScriptRegistry().compile_file(path)

        assert list(script.setters) == ["event"]

    def test_missing_setter_table(self) -> None:
        with pytest.raises(ScriptCompileError):
            ScriptRegistry().compile_source("public partial class Menu { }")

    def test_setter_for_undeclared_field(self) -> None:
        source = """
public partial class Menu
{
    internal static readonly Dictionary<string, Action<Menu, Component>> AutoBindSetters =
        new Dictionary<string, Action<Menu, Component>>
        {
            { "ghost", (self, value) => self.ghost = (Button)value },
        };
}
"""
        with pytest.raises(ScriptCompileError):
            ScriptRegistry().compile_source(source)

    def test_unreadable_file(self, tmp_path: Path) -> None:
        with pytest.raises(ScriptCompileError):
            ScriptRegistry().compile_file(tmp_path / "Missing.AutoBind.cs")


class TestLoadGeneratedSources:
    def test_loads_every_generated_file(self, generated_source: Path, config: BindConfig) -> None:
        (generated_source.parent / "Broken.AutoBind.cs").write_text("// nothing here")
        registry = ScriptRegistry()

        assert registry.load_generated_sources(config) == 1
        assert len(registry) == 1

    def test_missing_output_directory(self, config: BindConfig) -> None:
        assert ScriptRegistry().load_generated_sources(config) == 0

    def test_clear(self, generated_source: Path, config: BindConfig) -> None:
        registry = ScriptRegistry()
        registry.load_generated_sources(config)
        registry.clear()
        assert registry.find("UI.Root") is None
