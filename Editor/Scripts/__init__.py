#
# Copyright (c) Contributors to the Open 3D Engine Project.
# For complete copyright and license terms please see the LICENSE at the root of this distribution.
#
# SPDX-License-Identifier: Apache-2.0 OR MIT
#
"""
UI AutoBind Editor Scripts Package

This package binds named elements of a UI scene tree to fields of generated
C# partial classes.

Main modules:
    - naming_resolver: Binds child nodes to owner fields by name suffix
    - code_generator: Writes the generated and hand-written class files
    - component_binder: Assigns components into compiled classes and validates them
    - binding_scheduler: Binds owners once the editor has compiled their code
    - autobind_workflow: Editor commands and command-line entry point

Usage:
    # From command line
    ui-autobind --scene MainMenu.scene.json --resolve --generate --save

    # From the editor
    from ui_autobind import AutoBindOrchestrator
"""

from .autobind_owner import OWNER_TYPE, AutoBindOwner, BindingEntry, BindMode
from .autobind_workflow import (
    AutoBindOrchestrator,
    BatchGenerationResult,
    CodeGenerationResult,
)
from .bind_config import (
    BindConfig,
    ConfigError,
    ConfigManager,
    DEFAULT_SUFFIX_RULES,
    SuffixRule,
)
from .binding_scheduler import (
    MAX_ATTEMPTS,
    PENDING_KEY,
    BindState,
    DeferredBindingScheduler,
)
from .code_generator import CodeGenerator, GenerationError, GenerationResult
from .component_binder import (
    BindingFailure,
    BindingResult,
    BindingStatus,
    ComponentBinder,
    ValidationEntry,
    ValidationReport,
)
from .editor_host import EditorHost, ManualEditorHost
from .naming_resolver import NamingRuleResolver, ResolveResult
from .prefs_store import JsonPrefsStore, MemoryPrefsStore, PrefsStore
from .scene_loader import SceneObjectIds, find_owners, load_scene, save_scene
from .scene_tree import Component, Scene, SceneNode, TypeRef
from .script_registry import CompiledScript, FieldSetter, ScriptInstance, ScriptRegistry

__all__ = [
    # Scene model
    "TypeRef",
    "Component",
    "SceneNode",
    "Scene",
    "AutoBindOwner",
    "BindingEntry",
    "BindMode",
    "OWNER_TYPE",
    # Configuration
    "BindConfig",
    "SuffixRule",
    "DEFAULT_SUFFIX_RULES",
    "ConfigManager",
    "ConfigError",
    # Pipeline
    "NamingRuleResolver",
    "ResolveResult",
    "CodeGenerator",
    "GenerationResult",
    "GenerationError",
    "ScriptRegistry",
    "CompiledScript",
    "FieldSetter",
    "ScriptInstance",
    "ComponentBinder",
    "BindingResult",
    "BindingFailure",
    "BindingStatus",
    "ValidationEntry",
    "ValidationReport",
    "DeferredBindingScheduler",
    "BindState",
    "PENDING_KEY",
    "MAX_ATTEMPTS",
    # Host services
    "EditorHost",
    "ManualEditorHost",
    "PrefsStore",
    "MemoryPrefsStore",
    "JsonPrefsStore",
    "SceneObjectIds",
    "load_scene",
    "save_scene",
    "find_owners",
    # Main orchestrator
    "AutoBindOrchestrator",
    "CodeGenerationResult",
    "BatchGenerationResult",
]

__version__ = "1.0.0"
