#
# Copyright (c) Contributors to the Open 3D Engine Project.
# For complete copyright and license terms please see the LICENSE at the root of this distribution.
#
# SPDX-License-Identifier: Apache-2.0 OR MIT
#
"""
Naming-convention resolver for UI AutoBind

Walks a node subtree and binds every node whose name ends with a configured
suffix to the component of the rule's type on that node. The resolver only maps
the tree to binding entries; it writes no code and touches no compiled types,
so it can be exercised on a plain in-memory tree.

Usage:
    from naming_resolver import NamingRuleResolver

    resolver = NamingRuleResolver()
    result = resolver.resolve(owner.node, owner, config)
    print(result.added, result.skipped, result.unmatched)
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from .autobind_owner import AutoBindOwner, BindMode
from .bind_config import BindConfig, SuffixRule, require_config
from .scene_tree import Component, SceneNode
from .string_util import strip_invalid_chars, to_field_name

logger = logging.getLogger("UIAutoBind.Resolver")


@dataclass
class ResolveResult:
    """Counts produced by a naming-convention pass."""

    added: int = 0
    skipped: int = 0
    unmatched: int = 0

    # Batch statistics
    owners_processed: int = 0
    errors: List[str] = field(default_factory=list)

    def merge(self, other: "ResolveResult") -> None:
        self.added += other.added
        self.skipped += other.skipped
        self.unmatched += other.unmatched

    def summary(self) -> str:
        lines = [
            f"Added bindings:    {self.added}",
            f"Already bound:     {self.skipped}",
        ]
        if self.unmatched:
            lines.append(f"Missing component: {self.unmatched}")
        return "\n".join(lines)


class NamingRuleResolver:
    """Binds nodes to owner fields by name suffix."""

    def resolve(
        self,
        root_node: SceneNode,
        owner: AutoBindOwner,
        config: Optional[BindConfig],
    ) -> ResolveResult:
        """
        Resolve the subtree rooted at root_node into bindings on owner.

        Every node of the subtree is visited, the root included, whatever the
        outcome at its ancestors. Running twice on an unchanged tree adds
        nothing the second time.

        Raises:
            ConfigError: if there is no configuration or it has no suffix rules
        """
        config = require_config(config, need_rules=True)

        result = ResolveResult()
        self._resolve_node(root_node, owner, config.suffix_rules, result)

        logger.info(
            f"{owner.name}: added {result.added}, skipped {result.skipped}, "
            f"unmatched {result.unmatched}"
        )
        return result

    def resolve_many(
        self,
        owners: Iterable[AutoBindOwner],
        config: Optional[BindConfig],
        skip_manual: bool = True,
    ) -> ResolveResult:
        """
        Run the naming convention for several owners and total the counts.

        A failure on one owner is logged and recorded; the remaining owners are
        still processed.
        """
        config = require_config(config, need_rules=True)

        totals = ResolveResult()
        for owner in owners:
            if owner is None or owner.node is None:
                continue
            if skip_manual and owner.bind_mode == BindMode.MANUAL:
                logger.debug(f"{owner.name}: manual bind mode, skipped")
                continue

            try:
                totals.merge(self.resolve(owner.node, owner, config))
                totals.owners_processed += 1
            except Exception as e:
                logger.exception(f"Naming convention failed for {owner.name}")
                totals.errors.append(f"{owner.name}: {e}")

        return totals

    # ============================================================
    # Traversal
    # ============================================================

    def _resolve_node(
        self,
        node: SceneNode,
        owner: AutoBindOwner,
        rules: Tuple[SuffixRule, ...],
        result: ResolveResult,
    ) -> None:
        candidate = strip_invalid_chars(node.name)
        matched = self._match(node, candidate, rules)

        if matched is not None:
            rule, component = matched
            if component is None:
                logger.debug(
                    f"{node.path}: matches suffix '{rule.suffix}' but has no "
                    f"{rule.component_type.short_name}"
                )
                result.unmatched += 1
            elif owner.is_bound(component):
                result.skipped += 1
            else:
                field_name = self.derive_field_name(candidate, rule)
                entry = owner.add_binding(component, field_name, rule.component_type)
                logger.debug(f"{node.path}: bound as '{entry.field_name}'")
                result.added += 1

        for child in list(node.children):
            self._resolve_node(child, owner, rules, result)

    def _match(
        self, node: SceneNode, candidate: str, rules: Tuple[SuffixRule, ...]
    ) -> Optional[Tuple[SuffixRule, Optional[Component]]]:
        """
        Find the rule that binds this node.

        Rules are tried top to bottom; the first matching rule whose component
        is present on the node wins. If rules match but none finds its
        component, the first matching rule is returned with no component.
        """
        first_match = None
        for rule in rules:
            if not rule.matches(candidate):
                continue
            component = node.get_component(rule.component_type)
            if component is not None:
                return rule, component
            if first_match is None:
                first_match = rule

        if first_match is None:
            return None
        return first_match, None

    @staticmethod
    def derive_field_name(candidate: str, rule: SuffixRule) -> str:
        """Strip the rule's suffix and lower-case the first letter."""
        stem = candidate[: len(candidate) - len(rule.suffix)]
        field_name = to_field_name(stem)
        if not field_name:
            field_name = to_field_name(candidate)
        return field_name
