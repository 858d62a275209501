#
# Copyright (c) Contributors to the Open 3D Engine Project.
# For complete copyright and license terms please see the LICENSE at the root of this distribution.
#
# SPDX-License-Identifier: Apache-2.0 OR MIT
#
"""
UI AutoBind Workflow

This is the main entry point for the AutoBind editor commands. It can be run
from the command line against a scene file or driven from the editor.

The workflow:
1. Collect bindings for each owner (by hand, from its own components, or by
   naming convention)
2. Generate the partial-class pair for each owner
3. Ask the editor to refresh assets, which starts compilation
4. Bind the components into the compiled classes once the editor is idle

Usage:
    # Resolve, generate and bind every owner of a scene, then save it
    python -m ui_autobind.autobind_workflow --scene MainMenu.scene.json --resolve --generate --save

    # Validate existing bindings
    python -m ui_autobind.autobind_workflow --scene MainMenu.scene.json --validate

    # Use from the editor
    from autobind_workflow import AutoBindOrchestrator
    orchestrator = AutoBindOrchestrator(config, host, prefs, SceneObjectIds(scene))
    orchestrator.generate_all_code(find_owners(scene))
"""

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from .autobind_owner import AutoBindOwner
from .bind_config import CONFIG_FILE, BindConfig, ConfigError, ConfigManager, require_config
from .binding_scheduler import BindState, DeferredBindingScheduler
from .code_generator import CodeGenerator, GenerationError, GenerationResult
from .component_binder import BindingResult, ComponentBinder
from .editor_host import EditorHost, ManualEditorHost
from .naming_resolver import NamingRuleResolver, ResolveResult
from .prefs_store import PREFS_FILE, JsonPrefsStore, PrefsStore
from .scene_loader import (
    SceneFormatError,
    SceneObjectIds,
    find_owners,
    load_scene,
    save_scene,
)
from .script_registry import ScriptRegistry

logger = logging.getLogger("UIAutoBind.Workflow")


@dataclass
class CodeGenerationResult:
    """Result of generating the code for one owner."""

    success: bool = True
    error_message: str = ""
    generation: Optional[GenerationResult] = None
    queued_id: str = ""


@dataclass
class BatchGenerationResult:
    """Result of generating the code for several owners."""

    success_count: int = 0
    failure_count: int = 0
    skipped_count: int = 0
    errors: List[str] = field(default_factory=list)
    generated: List[GenerationResult] = field(default_factory=list)
    queued_ids: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failure_count == 0


class AutoBindOrchestrator:
    """
    Runs the AutoBind editor commands.

    The orchestrator wires the resolver, the code generator, the binder and the
    deferred scheduler to one configuration and one editor host.
    """

    def __init__(
        self,
        config: Optional[BindConfig],
        host: EditorHost,
        storage: PrefsStore,
        id_service: SceneObjectIds,
        registry: Optional[ScriptRegistry] = None,
    ):
        self.config = require_config(config)
        self.host = host
        self.registry = registry if registry is not None else ScriptRegistry()

        self.resolver = NamingRuleResolver()
        self.generator = CodeGenerator(self.config)
        self.binder = ComponentBinder(self.config, self.registry)
        self.scheduler = DeferredBindingScheduler(storage, id_service, host, self.binder)

    # ============================================================
    # Collecting bindings
    # ============================================================

    def auto_add_components(self, owner: AutoBindOwner) -> int:
        """Bind the components on the owner's own node."""
        added = owner.auto_add_components(list(self.config.ignored_component_types))
        logger.info(f"{owner.name}: added {added} components")
        return added

    def auto_bind_by_naming_convention(self, owner: AutoBindOwner) -> ResolveResult:
        """
        Bind the owner's subtree by naming convention.

        Raises:
            ConfigError: if the configuration has no suffix rules
        """
        return self.resolver.resolve(owner.node, owner, self.config)

    def batch_auto_bind(self, owners: Sequence[AutoBindOwner]) -> ResolveResult:
        """Run the naming convention for every owner not in manual bind mode."""
        result = self.resolver.resolve_many(owners, self.config)
        logger.info(
            f"Naming convention on {result.owners_processed} owners: "
            f"added {result.added}, skipped {result.skipped}, unmatched {result.unmatched}"
        )
        return result

    # ============================================================
    # Code generation
    # ============================================================

    def generate_code(self, owner: AutoBindOwner) -> CodeGenerationResult:
        """
        Generate the code for one owner and queue it for binding.

        The host is asked to refresh assets so the generated code compiles;
        binding happens once the host is idle again.
        """
        valid_bindings = owner.get_valid_bindings()
        if not valid_bindings:
            return CodeGenerationResult(
                success=False,
                error_message=f"'{owner.name}' has no valid bindings",
            )

        try:
            generation = self.generator.generate(owner, valid_bindings)
        except GenerationError as e:
            logger.error(f"Code generation failed for {owner.name}: {e}")
            return CodeGenerationResult(success=False, error_message=str(e))

        self.host.refresh_assets()
        queued_id = self.scheduler.enqueue(owner)

        return CodeGenerationResult(generation=generation, queued_id=queued_id)

    def generate_all_code(self, owners: Sequence[AutoBindOwner]) -> BatchGenerationResult:
        """
        Generate the code for several owners.

        An owner that fails to generate does not stop the others. Assets are
        refreshed once, and the owners that generated are queued for binding in
        one batch.
        """
        result = BatchGenerationResult()
        generated_owners = []
        # Full class name -> owner that generated it
        class_owners = {}

        for owner in owners:
            valid_bindings = owner.get_valid_bindings()
            if not valid_bindings:
                result.skipped_count += 1
                continue

            try:
                full_class_name = self.config.get_full_class_name(owner.class_name)
                if full_class_name in class_owners:
                    raise GenerationError(
                        f"Class {full_class_name} is already generated for "
                        f"{class_owners[full_class_name].name}; set a custom class name"
                    )
                result.generated.append(self.generator.generate(owner, valid_bindings))
                class_owners[full_class_name] = owner
                generated_owners.append(owner)
                result.success_count += 1
            except GenerationError as e:
                logger.error(f"Code generation failed for {owner.name}: {e}")
                result.failure_count += 1
                result.errors.append(f"{owner.name}: {e}")

        if generated_owners:
            self.host.refresh_assets()
            result.queued_ids = self.scheduler.enqueue_all(generated_owners)

        logger.info(
            f"Generated code for {result.success_count} owners, "
            f"{result.failure_count} failed, {result.skipped_count} skipped"
        )
        return result

    # ============================================================
    # Binding
    # ============================================================

    def rebind(self, owner: AutoBindOwner) -> bool:
        """Bind an owner now, without waiting for the host."""
        return self.binder.bind_one(owner)

    def batch_rebind(self, owners: Sequence[AutoBindOwner]) -> BindingResult:
        return self.binder.bind_many(owners)

    def validate(self, owner: AutoBindOwner) -> str:
        """Validate an owner's bindings and render the report."""
        return self.binder.generate_report(self.binder.validate_binding(owner))

    def get_bind_state(self, owner: AutoBindOwner) -> BindState:
        return self.scheduler.get_state(owner)


# ============================================================
# Command Line
# ============================================================


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        description="Bind named UI elements to generated C# fields",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Bind by naming convention, generate code and bind the compiled classes
  ui-autobind -s MainMenu.scene.json --resolve --generate --save

  # Bind again after a manual compile
  ui-autobind -s MainMenu.scene.json --bind

  # Check the bindings of every owner
  ui-autobind -s MainMenu.scene.json --validate

  # Reset the configuration to the defaults
  ui-autobind --regenerate-config
        """,
    )

    parser.add_argument(
        "--scene",
        "-s",
        help="Path to the scene JSON file",
    )
    parser.add_argument(
        "--config",
        "-c",
        default=CONFIG_FILE,
        help=f"Path to the binding configuration (default: {CONFIG_FILE})",
    )
    parser.add_argument(
        "--prefs",
        default=PREFS_FILE,
        help=f"Path to the editor preferences file (default: {PREFS_FILE})",
    )
    parser.add_argument(
        "--list-owners",
        action="store_true",
        help="List the AutoBind owners of the scene and exit",
    )
    parser.add_argument(
        "--resolve",
        action="store_true",
        help="Bind child nodes by naming convention",
    )
    parser.add_argument(
        "--generate",
        action="store_true",
        help="Generate code and bind once it is compiled",
    )
    parser.add_argument(
        "--bind",
        action="store_true",
        help="Bind the already generated code",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Print a validation report for every owner",
    )
    parser.add_argument(
        "--save",
        action="store_true",
        help="Write the updated bindings back to the scene file",
    )
    parser.add_argument(
        "--regenerate-config",
        action="store_true",
        help="Replace the configuration file with the defaults",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output",
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for command-line usage."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        if args.regenerate_config:
            config = ConfigManager.regenerate_config(args.config)
            if not args.scene:
                return 0
        else:
            config = ConfigManager.load_or_create_config(args.config)
    except ConfigError as e:
        logger.error(str(e))
        return 1

    if not args.scene:
        logger.error("--scene is required")
        parser.print_help()
        return 1

    try:
        scene = load_scene(args.scene)
    except SceneFormatError as e:
        logger.error(str(e))
        return 1

    owners = find_owners(scene)

    if args.list_owners:
        print(f"\nFound {len(owners)} AutoBind owners in {scene.name}:")
        for owner in owners:
            print(
                f"  {owner.node.path} -> {config.get_full_class_name(owner.class_name)} "
                f"[{owner.bind_mode.value}, {len(owner.bindings)} bindings]"
            )
        return 0

    # Compiling is modelled by reading the generated sources back in
    registry = ScriptRegistry()
    registry.load_generated_sources(config)
    host = ManualEditorHost(refresh_callback=lambda: registry.load_generated_sources(config))

    orchestrator = AutoBindOrchestrator(
        config, host, JsonPrefsStore(args.prefs), SceneObjectIds(scene), registry
    )

    # Owners queued by an earlier run
    orchestrator.scheduler.install()
    host.run_until_idle()

    resolve_result = None
    generate_result = None
    bind_result = None

    try:
        if args.resolve:
            resolve_result = orchestrator.batch_auto_bind(owners)
    except ConfigError as e:
        logger.error(str(e))
        return 1

    if args.generate:
        generate_result = orchestrator.generate_all_code(owners)
        host.run_until_idle()

    if args.bind:
        bind_result = orchestrator.batch_rebind(owners)

    if args.validate:
        for owner in owners:
            print()
            print(orchestrator.validate(owner))

    if args.save:
        save_scene(scene, Path(args.scene))

    # Print summary
    print("\n" + "=" * 60)
    print("UI AutoBind Complete")
    print("=" * 60)
    print(f"  Owners:             {len(owners)}")

    if resolve_result is not None:
        print(f"  Bindings added:     {resolve_result.added}")
        print(f"  Already bound:      {resolve_result.skipped}")
        print(f"  Missing component:  {resolve_result.unmatched}")

    if generate_result is not None:
        print(f"  Classes generated:  {generate_result.success_count}")
        print(f"  Generation failed:  {generate_result.failure_count}")
        print(f"  Skipped (no data):  {generate_result.skipped_count}")
        resolved = sum(
            1
            for owner_id in generate_result.queued_ids
            if orchestrator.scheduler.get_state(owner_id) == BindState.RESOLVED
        )
        print(f"  Bound after compile: {resolved}")

    if bind_result is not None:
        print(f"  Bound:              {bind_result.success_count}")
        print(f"  Bind failed:        {bind_result.failure_count}")
        for name in bind_result.failure_list[:10]:
            print(f"    - {name}")
        if len(bind_result.failure_list) > 10:
            print(f"    ... and {len(bind_result.failure_list) - 10} more")

    errors = []
    if resolve_result is not None:
        errors.extend(resolve_result.errors)
    if generate_result is not None:
        errors.extend(generate_result.errors)
    if bind_result is not None:
        errors.extend(bind_result.errors)

    if errors:
        print("\nErrors:")
        for error in errors:
            print(f"  ! {error}")

    print("=" * 60)

    failed = (generate_result is not None and not generate_result.success) or (
        bind_result is not None and not bind_result.success
    )
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
