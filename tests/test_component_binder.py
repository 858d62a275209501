"""Tests for binding components into compiled classes and validating them."""

from pathlib import Path

import pytest

from ui_autobind.autobind_owner import AutoBindOwner
from ui_autobind.bind_config import BindConfig, ConfigError
from ui_autobind.code_generator import CodeGenerator
from ui_autobind.component_binder import BindingStatus, ComponentBinder
from ui_autobind.naming_resolver import NamingRuleResolver
from ui_autobind.scene_tree import Component, SceneNode
from ui_autobind.script_registry import ScriptInstance, ScriptRegistry

from conftest import BUTTON, TEXT, add_widget


def make_owner(name: str, config: BindConfig) -> AutoBindOwner:
    """Owner with a resolved button and label, generated and ready to compile."""
    node = SceneNode(name)
    add_widget(node, "ConfirmButton", BUTTON)
    add_widget(node, "TitleLabel", TEXT)
    owner = node.add_component(AutoBindOwner())
    NamingRuleResolver().resolve(node, owner, config)
    CodeGenerator(config).generate(owner)
    return owner


@pytest.fixture
def registry() -> ScriptRegistry:
    return ScriptRegistry()


@pytest.fixture
def binder(config: BindConfig, registry: ScriptRegistry) -> ComponentBinder:
    return ComponentBinder(config, registry)


@pytest.fixture
def compiled_owner(config: BindConfig, registry: ScriptRegistry) -> AutoBindOwner:
    owner = make_owner("Menu", config)
    registry.load_generated_sources(config)
    return owner


def script_instances(owner: AutoBindOwner):
    return [c for c in owner.node.components if isinstance(c, ScriptInstance)]


# =============================================================================
# BindOne
# =============================================================================


class TestBindOne:
    def test_assigns_every_field(self, binder: ComponentBinder, compiled_owner: AutoBindOwner) -> None:
        assert binder.bind_one(compiled_owner)

        [instance] = script_instances(compiled_owner)
        confirm, title = compiled_owner.bindings
        assert instance.get_field("confirm") is confirm.resolved_target
        assert instance.get_field("title") is title.resolved_target

    def test_rebinding_reuses_the_instance(self, binder: ComponentBinder, compiled_owner: AutoBindOwner) -> None:
        binder.bind_one(compiled_owner)
        binder.bind_one(compiled_owner)
        assert len(script_instances(compiled_owner)) == 1

    def test_instance_of_previous_compilation_is_replaced(
        self, binder: ComponentBinder, compiled_owner: AutoBindOwner, registry: ScriptRegistry, config: BindConfig
    ) -> None:
        binder.bind_one(compiled_owner)
        registry.clear()
        registry.load_generated_sources(config)

        assert binder.bind_one(compiled_owner)

        [instance] = script_instances(compiled_owner)
        assert instance.script is registry.find("UI.Menu")

    def test_class_not_compiled(self, binder: ComponentBinder, config: BindConfig) -> None:
        owner = make_owner("Menu", config)
        assert not binder.bind_one(owner)
        assert script_instances(owner) == []

    def test_missing_field_does_not_stop_other_entries(
        self, binder: ComponentBinder, compiled_owner: AutoBindOwner
    ) -> None:
        extra = add_widget(compiled_owner.node, "BackButton", BUTTON)
        compiled_owner.add_binding(extra.get_component(BUTTON), "back")

        assert not binder.bind_one(compiled_owner)

        [instance] = script_instances(compiled_owner)
        assert instance.get_field("confirm") is not None
        assert instance.get_field("title") is not None

    def test_type_mismatch_is_not_assigned(
        self, binder: ComponentBinder, compiled_owner: AutoBindOwner
    ) -> None:
        title = compiled_owner.find_binding("title")
        confirm = compiled_owner.find_binding("confirm")
        confirm.resolved_target = title.resolved_target

        assert not binder.bind_one(compiled_owner)

        [instance] = script_instances(compiled_owner)
        assert instance.get_field("confirm") is None
        assert instance.get_field("title") is title.resolved_target

    def test_requires_config(self, registry: ScriptRegistry) -> None:
        with pytest.raises(ConfigError):
            ComponentBinder(None, registry)


# =============================================================================
# BindMany
# =============================================================================


class TestBindMany:
    def test_one_broken_owner(self, binder: ComponentBinder, registry: ScriptRegistry, config: BindConfig) -> None:
        owners = [make_owner(name, config) for name in ("Alpha", "Beta", "Gamma")]
        registry.load_generated_sources(config)

        # Beta gains a binding after its code was compiled
        beta = owners[1]
        extra = add_widget(beta.node, "BackButton", BUTTON)
        beta.add_binding(extra.get_component(BUTTON), "back")

        result = binder.bind_many(owners)

        assert result.success_count == 2
        assert result.failure_count == 1
        assert result.failure_list == ["Beta"]
        assert any("back" in error for error in result.errors)
        assert not result.success
        assert script_instances(owners[2])[0].get_field("confirm") is not None

    def test_all_clean(self, binder: ComponentBinder, registry: ScriptRegistry, config: BindConfig) -> None:
        owners = [make_owner(name, config) for name in ("Alpha", "Beta")]
        registry.load_generated_sources(config)

        result = binder.bind_many(owners)

        assert result.success
        assert result.success_count == 2

    def test_owner_error_is_recorded(
        self,
        binder: ComponentBinder,
        compiled_owner: AutoBindOwner,
        monkeypatch: pytest.MonkeyPatch,
        config: BindConfig,
    ) -> None:
        broken = make_owner("Broken", config)
        original = binder._bind_owner

        def bind_owner(owner):
            if owner is broken:
                raise RuntimeError("host refused")
            return original(owner)

        monkeypatch.setattr(binder, "_bind_owner", bind_owner)

        result = binder.bind_many([broken, compiled_owner])

        assert result.success_count == 1
        assert result.failure_list == ["Broken"]
        assert result.errors == ["Broken: host refused"]


# =============================================================================
# Validation
# =============================================================================


class TestValidation:
    def test_all_ok(self, binder: ComponentBinder, compiled_owner: AutoBindOwner) -> None:
        report = binder.validate_binding(compiled_owner)

        assert report.script_found
        assert report.class_name == "UI.Menu"
        assert [e.status for e in report.entries] == [BindingStatus.OK, BindingStatus.OK]
        assert report.is_valid

    def test_validation_does_not_bind(self, binder: ComponentBinder, compiled_owner: AutoBindOwner) -> None:
        binder.validate_binding(compiled_owner)
        assert script_instances(compiled_owner) == []

    def test_classifies_problems(self, binder: ComponentBinder, compiled_owner: AutoBindOwner) -> None:
        compiled_owner.find_binding("confirm").resolved_target = Component(TEXT)
        compiled_owner.find_binding("title").resolved_target.node.destroy()
        compiled_owner.add_binding(compiled_owner.node.add_component(Component(BUTTON)), "extra")

        report = binder.validate_binding(compiled_owner)

        statuses = {e.field_name: e.status for e in report.entries}
        assert statuses == {
            "confirm": BindingStatus.MISSING,
            "title": BindingStatus.MISSING,
            "extra": BindingStatus.MISSING,
        }
        assert not report.is_valid

    def test_type_mismatch(self, binder: ComponentBinder, compiled_owner: AutoBindOwner) -> None:
        text = compiled_owner.node.add_component(Component(TEXT))
        compiled_owner.find_binding("confirm").resolved_target = text

        report = binder.validate_binding(compiled_owner)

        assert report.entries[0].status == BindingStatus.TYPE_MISMATCH
        assert report.count(BindingStatus.TYPE_MISMATCH) == 1

    def test_class_not_compiled(self, binder: ComponentBinder, config: BindConfig) -> None:
        report = binder.validate_binding(make_owner("Menu", config))
        assert not report.script_found
        assert report.count(BindingStatus.MISSING) == 2


class TestReport:
    def test_report_text(self, binder: ComponentBinder, compiled_owner: AutoBindOwner) -> None:
        text = binder.generate_report(binder.validate_binding(compiled_owner))

        assert text.startswith("AutoBind validation: Menu (UI.Menu)")
        assert "  OK:           2" in text
        assert "[OK] confirm  Button on Menu/ConfirmButton" in text
        assert text.endswith("Result: valid")

    def test_report_is_deterministic(self, binder: ComponentBinder, compiled_owner: AutoBindOwner) -> None:
        report = binder.validate_binding(compiled_owner)
        assert binder.generate_report(report) == binder.generate_report(report)

    def test_report_without_script(self, binder: ComponentBinder, config: BindConfig) -> None:
        text = binder.generate_report(binder.validate_binding(make_owner("Menu", config)))
        assert "Compiled class not found" in text
        assert text.endswith("Result: has problems")
