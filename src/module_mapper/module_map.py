"""
Classification engine mapping dependencies to modules.

``ModuleMap`` is a sequential fold over an ordered dependency list. It owns
its memo and aggregation state for the lifetime of one classification pass
and is not thread safe: ``classify`` reads and writes both without locking,
so concurrent callers must synchronize externally.
"""

from typing import Dict, Iterable, List, Optional, Set

from .dependency import Dependency
from .error_handling import (
    ErrorCategory,
    InvalidCoordinateError,
    get_error_handler,
)
from .module import ModuleKey, ModuleRule, create_default_module
from .structured_logging import log_module_assigned


class ModuleMap:
    """Assigns each dependency to exactly one concrete module."""

    def __init__(
        self,
        rules: Optional[List[ModuleRule]] = None,
        dependencies: Optional[Iterable[Dependency]] = None,
        legacy_group_matching: bool = False,
    ):
        """
        Initialize the engine.

        Args:
            rules: Configured module rules, evaluated in declaration order
            dependencies: Optional dependencies to classify immediately
            legacy_group_matching: Compare group-id criteria against the
                artifact id, as the JBoss modules Maven plugin does
        """
        self.rules: List[ModuleRule] = list(rules or [])
        self.legacy_group_matching = legacy_group_matching
        self.closed = False

        self._modules: Dict[ModuleKey, ModuleRule] = {}
        self._assignments: Dict[ModuleKey, List[Dependency]] = {}
        self._members: Dict[ModuleKey, Set[Dependency]] = {}
        self._memo: Dict[Dependency, ModuleRule] = {}

        for dependency in dependencies or []:
            self.classify(dependency)

    def classify(self, dependency: Dependency) -> ModuleRule:
        """
        Return the module of ``dependency``, assigning it on first sight.

        Raises:
            InvalidCoordinateError: If no rule matches and the dependency has a
                blank group or artifact id. No state is modified in that case.
        """
        cached = self._memo.get(dependency)
        if cached is not None:
            return cached

        for rule in self.rules:
            context = rule.match(dependency, self.legacy_group_matching)
            if not context.matched:
                continue
            candidate = rule.derive(context) if context.has_group_match else rule
            module = self._store(candidate, dependency)
            log_module_assigned(dependency.coordinates, module.name, rule.name)
            return module

        try:
            candidate = create_default_module(dependency)
        except InvalidCoordinateError as e:
            get_error_handler().error(
                ErrorCategory.CLASSIFICATION,
                f"Cannot derive a module name: {e}",
                "module_map",
                "classify",
                exception=e,
                details={"coordinates": dependency.coordinates},
            )
            raise

        module = self._store(candidate, dependency)
        log_module_assigned(dependency.coordinates, module.name)
        return module

    def module_of(self, dependency: Dependency) -> Optional[ModuleRule]:
        """Return the module already assigned to ``dependency``, without classifying it."""
        return self._memo.get(dependency)

    def _store(self, candidate: ModuleRule, dependency: Dependency) -> ModuleRule:
        key = candidate.key
        module = self._modules.setdefault(key, candidate)
        members = self._members.setdefault(key, set())
        if dependency not in members:
            members.add(dependency)
            self._assignments.setdefault(key, []).append(dependency)
        self._memo[dependency] = module
        return module

    def aggregate(self) -> Dict[ModuleRule, List[Dependency]]:
        """
        Snapshot the module to dependency mapping.

        Modules appear in creation order, dependencies in assignment order.
        The returned dict and lists are copies owned by the caller.
        """
        self.closed = True
        return {
            self._modules[key]: list(dependencies)
            for key, dependencies in self._assignments.items()
        }

    @property
    def modules(self) -> List[ModuleRule]:
        return list(self._modules.values())

    def __len__(self) -> int:
        return len(self._modules)

    def __contains__(self, dependency: object) -> bool:
        return dependency in self._memo

    def describe(self) -> str:
        """Human readable dump of modules and their artifact ids."""
        lines = []
        for key, dependencies in self._assignments.items():
            lines.append(f"{self._modules[key].name}:")
            lines.extend(f"  {dependency.artifact_id}" for dependency in dependencies)
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.describe()
