"""End-to-end tests for the AutoBind workflow and its command line."""

import json
from pathlib import Path

import pytest

from ui_autobind.autobind_owner import AutoBindOwner, BindMode
from ui_autobind.autobind_workflow import AutoBindOrchestrator, main
from ui_autobind.bind_config import BindConfig, ConfigError
from ui_autobind.binding_scheduler import PENDING_KEY, BindState
from ui_autobind.editor_host import ManualEditorHost
from ui_autobind.prefs_store import JsonPrefsStore, MemoryPrefsStore
from ui_autobind.scene_loader import (
    SceneObjectIds,
    find_owners,
    load_scene,
    save_scene,
    scene_from_dict,
    scene_to_dict,
)
from ui_autobind.scene_tree import Component, Scene, SceneNode
from ui_autobind.script_registry import ScriptInstance, ScriptRegistry

from conftest import BUTTON, IMAGE, add_widget


def make_orchestrator(config: BindConfig, scene: Scene, storage=None):
    """Orchestrator whose host compiles the generated sources on refresh."""
    registry = ScriptRegistry()
    host = ManualEditorHost(refresh_callback=lambda: registry.load_generated_sources(config))
    orchestrator = AutoBindOrchestrator(
        config, host, storage or MemoryPrefsStore(), SceneObjectIds(scene), registry
    )
    return orchestrator, host


def bound_instance(owner: AutoBindOwner) -> ScriptInstance:
    [instance] = [c for c in owner.node.components if isinstance(c, ScriptInstance)]
    return instance


# =============================================================================
# Orchestrator
# =============================================================================


class TestOrchestrator:
    def test_resolve_generate_and_bind(self, config: BindConfig, scene: Scene, owner: AutoBindOwner) -> None:
        orchestrator, host = make_orchestrator(config, scene)

        resolve_result = orchestrator.auto_bind_by_naming_convention(owner)
        generation = orchestrator.generate_code(owner)

        assert resolve_result.added == 2
        assert generation.success
        assert generation.generation.generated_path.exists()
        assert host.refresh_count == 1
        assert orchestrator.get_bind_state(owner) == BindState.QUEUED

        host.run_until_idle()

        assert orchestrator.get_bind_state(owner) == BindState.RESOLVED
        instance = bound_instance(owner)
        assert instance.get_field("confirm") is owner.find_binding("confirm").resolved_target
        assert "Result: valid" in orchestrator.validate(owner)

    def test_generate_waits_for_compilation(self, config: BindConfig, scene: Scene, owner: AutoBindOwner) -> None:
        orchestrator, host = make_orchestrator(config, scene)
        orchestrator.auto_bind_by_naming_convention(owner)

        host.busy = True
        orchestrator.generate_code(owner)
        host.tick()
        assert orchestrator.get_bind_state(owner) == BindState.AWAITING_READINESS

        host.busy = False
        host.run_until_idle()
        assert orchestrator.get_bind_state(owner) == BindState.RESOLVED

    def test_generate_without_bindings(self, config: BindConfig, scene: Scene, owner: AutoBindOwner) -> None:
        orchestrator, host = make_orchestrator(config, scene)

        result = orchestrator.generate_code(owner)

        assert not result.success
        assert "no valid bindings" in result.error_message
        assert host.refresh_count == 0

    def test_generate_error_is_reported(self, config: BindConfig, scene: Scene, owner: AutoBindOwner) -> None:
        orchestrator, _ = make_orchestrator(config, scene)
        orchestrator.auto_bind_by_naming_convention(owner)
        owner.custom_class_name = "Not A Class"

        result = orchestrator.generate_code(owner)

        assert not result.success
        assert "Invalid class name" in result.error_message

    def test_generate_all_code(self, config: BindConfig, scene: Scene, owner: AutoBindOwner) -> None:
        orchestrator, host = make_orchestrator(config, scene)

        popup = scene.add_root(SceneNode("Popup"))
        add_widget(popup, "CloseButton", BUTTON)
        popup_owner = popup.add_component(AutoBindOwner())

        broken = scene.add_root(SceneNode("Broken"))
        add_widget(broken, "OkButton", BUTTON)
        broken_owner = broken.add_component(AutoBindOwner(custom_class_name="static"))

        empty_owner = scene.add_root(SceneNode("Empty")).add_component(AutoBindOwner())

        owners = find_owners(scene)
        orchestrator.batch_auto_bind(owners)
        result = orchestrator.generate_all_code(owners)

        assert result.success_count == 2
        assert result.failure_count == 1
        assert result.skipped_count == 1
        assert result.errors[0].startswith("Broken:")
        assert host.refresh_count == 1
        assert result.queued_ids == ["MainMenu::Root", "MainMenu::Popup"]

        host.run_until_idle()

        assert orchestrator.get_bind_state(owner) == BindState.RESOLVED
        assert orchestrator.get_bind_state(popup_owner) == BindState.RESOLVED
        assert orchestrator.get_bind_state(broken_owner) == BindState.IDLE
        assert orchestrator.get_bind_state(empty_owner) == BindState.IDLE

    def test_generate_all_rejects_duplicate_class_names(self, config: BindConfig, scene: Scene) -> None:
        orchestrator, _ = make_orchestrator(config, scene)
        owners = []
        for _ in range(2):
            popup = scene.add_root(SceneNode("Popup"))
            add_widget(popup, "CloseButton", BUTTON)
            owners.append(popup.add_component(AutoBindOwner()))

        orchestrator.batch_auto_bind(owners)
        result = orchestrator.generate_all_code(owners)

        assert result.success_count == 1
        assert result.failure_count == 1
        assert "UI.Popup is already generated for Popup" in result.errors[0]
        assert result.queued_ids == ["MainMenu::Popup"]

    def test_generate_all_with_non_ascii_owner_names(self, config: BindConfig) -> None:
        scene = Scene("菜单")
        owners = []
        for name in ("主菜单", "设置"):
            node = scene.add_root(SceneNode(name))
            add_widget(node, "确认Button", BUTTON)
            owners.append(node.add_component(AutoBindOwner()))
        orchestrator, host = make_orchestrator(config, scene)

        orchestrator.batch_auto_bind(owners)
        result = orchestrator.generate_all_code(owners)

        assert result.success_count == 2
        assert [g.class_name for g in result.generated] == ["主菜单", "设置"]

        host.run_until_idle()
        assert [orchestrator.get_bind_state(o) for o in owners] == [BindState.RESOLVED] * 2
        assert bound_instance(owners[1]).get_field("确认") is owners[1].find_binding("确认").resolved_target

    def test_failed_bind_before_compile_is_retried_after_reload(
        self, config: BindConfig, scene: Scene, owner: AutoBindOwner
    ) -> None:
        registry = ScriptRegistry()
        storage = MemoryPrefsStore()
        # Refreshing does not compile, so the first check finds no script
        host = ManualEditorHost()
        orchestrator = AutoBindOrchestrator(config, host, storage, SceneObjectIds(scene), registry)
        orchestrator.auto_bind_by_naming_convention(owner)
        orchestrator.generate_code(owner)

        host.run_until_idle()

        assert orchestrator.scheduler.get_bind_result(owner) is False
        assert storage.get(PENDING_KEY) == "MainMenu::Root"

        # Compilation finishes and the editor reloads
        registry.load_generated_sources(config)
        reloaded_scene = scene_from_dict(scene_to_dict(scene))
        new_host = ManualEditorHost()
        reloaded = AutoBindOrchestrator(config, new_host, storage, SceneObjectIds(reloaded_scene), registry)

        assert reloaded.scheduler.process_pending() == 1
        new_host.run_until_idle()

        [new_owner] = find_owners(reloaded_scene)
        assert reloaded.get_bind_state(new_owner) == BindState.RESOLVED
        assert reloaded.scheduler.get_bind_result(new_owner) is True
        assert storage.get(PENDING_KEY) == ""

    def test_batch_auto_bind_skips_manual_owners(self, config: BindConfig, scene: Scene) -> None:
        orchestrator, _ = make_orchestrator(config, scene)
        manual = scene.roots[0].add_component(AutoBindOwner(BindMode.MANUAL))

        result = orchestrator.batch_auto_bind([manual])

        assert result.owners_processed == 0
        assert manual.bindings == []

    def test_auto_add_components(self, config: BindConfig, scene: Scene, owner: AutoBindOwner) -> None:
        orchestrator, _ = make_orchestrator(config, scene)
        owner.node.add_component(Component(IMAGE))

        assert orchestrator.auto_add_components(owner) == 1
        assert owner.bindings[0].field_name == "image"

    def test_batch_rebind(self, config: BindConfig, scene: Scene, owner: AutoBindOwner) -> None:
        orchestrator, host = make_orchestrator(config, scene)
        orchestrator.auto_bind_by_naming_convention(owner)
        orchestrator.generate_code(owner)

        result = orchestrator.batch_rebind([owner])

        assert result.success_count == 1
        assert orchestrator.rebind(owner)

    def test_requires_config(self, scene: Scene) -> None:
        with pytest.raises(ConfigError):
            AutoBindOrchestrator(None, ManualEditorHost(), MemoryPrefsStore(), SceneObjectIds(scene))

    def test_naming_convention_requires_rules(self, tmp_path: Path, scene: Scene, owner: AutoBindOwner) -> None:
        config = BindConfig(base_path=str(tmp_path), suffix_rules=())
        orchestrator, _ = make_orchestrator(config, scene)
        with pytest.raises(ConfigError):
            orchestrator.auto_bind_by_naming_convention(owner)


# =============================================================================
# Command line
# =============================================================================


@pytest.fixture
def scene_file(scene: Scene, owner: AutoBindOwner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "MainMenu.scene.json"
    save_scene(scene, path)
    return path


class TestCommandLine:
    def test_resolve_generate_save(self, scene_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        code = main(["--scene", str(scene_file), "--resolve", "--generate", "--save"])

        assert code == 0
        assert (tmp_path / "autobind_config.json").exists()
        assert (tmp_path / "Assets/Scripts/UI/AutoBind/UI/Root.AutoBind.cs").exists()
        assert (tmp_path / "Assets/Scripts/UI/AutoBind/UI/Root.cs").exists()

        [owner] = find_owners(load_scene(scene_file))
        assert [e.field_name for e in owner.bindings] == ["confirm", "title"]

        output = capsys.readouterr().out
        assert "UI AutoBind Complete" in output
        assert "Bound after compile: 1" in output

    def test_validate_after_generate(self, scene_file: Path, capsys: pytest.CaptureFixture) -> None:
        main(["--scene", str(scene_file), "--resolve", "--generate", "--save"])
        capsys.readouterr()

        code = main(["--scene", str(scene_file), "--bind", "--validate"])

        output = capsys.readouterr().out
        assert code == 0
        assert "AutoBind validation: Root (UI.Root)" in output
        assert "Result: valid" in output

    def test_pending_ids_resumed_on_start(self, scene_file: Path, tmp_path: Path) -> None:
        main(["--scene", str(scene_file), "--resolve", "--generate", "--save"])
        prefs = JsonPrefsStore(tmp_path / "autobind_prefs.json")
        prefs.set(PENDING_KEY, "MainMenu::Root")

        assert main(["--scene", str(scene_file)]) == 0
        assert prefs.get(PENDING_KEY) == ""

    def test_list_owners(self, scene_file: Path, capsys: pytest.CaptureFixture) -> None:
        assert main(["--scene", str(scene_file), "--list-owners"]) == 0
        assert "Root -> UI.Root" in capsys.readouterr().out

    def test_regenerate_config(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        (tmp_path / "autobind_config.json").write_text(json.dumps({"namespaceName": "Old"}))

        assert main(["--regenerate-config"]) == 0
        assert json.loads((tmp_path / "autobind_config.json").read_text())["namespaceName"] == "UI"

    def test_missing_scene(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        assert main(["--scene", str(tmp_path / "missing.json")]) == 1
        assert main([]) == 1
