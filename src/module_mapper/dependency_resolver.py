"""
Transitive dependency resolution for the classification pass.

The classification engine consumes an already resolved, flat dependency list.
Resolvers turn the root dependencies of a build into that list; the one
shipped here reads the tree printed by ``mvn dependency:tree`` so no
repository access is required.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .dependency import Dependency
from .error_handling import log_resolution_error
from .structured_logging import get_resolver_logger, log_dependency_unresolved

TEST_SCOPE = "test"


class DependencyResolutionError(Exception):
    """Raised when the transitive closure of a dependency cannot be built."""

    def __init__(self, dependency: Dependency, reason: str):
        super().__init__(f"Cannot resolve {dependency.coordinates}: {reason}")
        self.dependency = dependency
        self.reason = reason


@dataclass
class DependencyTree:
    """Dependency graph of one or more projects, in the order it was printed."""

    projects: List[Dependency] = field(default_factory=list)
    children: Dict[Dependency, List[Dependency]] = field(default_factory=dict)

    def add_edge(self, parent: Dependency, child: Dependency) -> None:
        siblings = self.children.setdefault(parent, [])
        if child not in siblings:
            siblings.append(child)
        self.children.setdefault(child, [])

    def add_project(self, project: Dependency) -> None:
        if project not in self.projects:
            self.projects.append(project)
        self.children.setdefault(project, [])

    @property
    def direct_dependencies(self) -> List[Dependency]:
        """Dependencies declared directly by the projects, without duplicates."""
        direct: Dict[Dependency, None] = {}
        for project in self.projects:
            for child in self.children.get(project, []):
                direct.setdefault(child, None)
        return list(direct)

    def __contains__(self, dependency: object) -> bool:
        return dependency in self.children

    def closure(self, dependency: Dependency) -> List[Dependency]:
        """Preorder list of ``dependency`` and everything below it."""
        result: Dict[Dependency, None] = {}
        stack = [dependency]
        while stack:
            node = stack.pop()
            if node in result:
                continue
            result[node] = None
            stack.extend(reversed(self.children.get(node, [])))
        return list(result)


class BaseDependencyResolver(ABC):
    """Base class for dependency resolvers."""

    def __init__(self, skip_test_scope: bool = True):
        """
        Initialize resolver.

        Args:
            skip_test_scope: Drop test-scoped dependencies from resolved closures
        """
        self.skip_test_scope = skip_test_scope

    @abstractmethod
    def resolve(self, dependency: Dependency) -> List[Dependency]:
        """
        Resolve the transitive dependencies of ``dependency``.

        The dependency itself is the first element of the result.

        Raises:
            DependencyResolutionError: If the dependency cannot be resolved.
        """

    def _filter_scope(self, dependencies: Iterable[Dependency]) -> List[Dependency]:
        if not self.skip_test_scope:
            return list(dependencies)
        return [d for d in dependencies if d.scope != TEST_SCOPE]


class TreeDependencyResolver(BaseDependencyResolver):
    """Resolves dependencies from a parsed ``mvn dependency:tree`` report."""

    def __init__(self, tree: DependencyTree, skip_test_scope: bool = True):
        super().__init__(skip_test_scope)
        self.tree = tree

    def resolve(self, dependency: Dependency) -> List[Dependency]:
        if dependency not in self.tree:
            raise DependencyResolutionError(
                dependency, "artifact not present in the dependency tree"
            )
        return self._filter_scope(self.tree.closure(dependency))


def resolve_dependencies(
    roots: Iterable[Dependency], resolver: BaseDependencyResolver
) -> List[Dependency]:
    """
    Resolve every root and concatenate the closures in root order.

    Roots that fail to resolve are reported and skipped so one broken
    artifact does not abort the whole pass.
    """
    resolved: Dict[Dependency, None] = {}
    failures = 0

    for root in roots:
        try:
            closure = resolver.resolve(root)
        except DependencyResolutionError as e:
            failures += 1
            log_resolution_error(
                f"Cannot resolve dependency: {e.reason}",
                "dependency_resolver",
                "resolve_dependencies",
                coordinates=root.coordinates,
                exception=e,
            )
            log_dependency_unresolved(root.coordinates, e.reason)
            continue
        for dependency in closure:
            resolved.setdefault(dependency, None)

    get_resolver_logger().debug(
        "dependencies_resolved", resolved_count=len(resolved), failed_roots=failures
    )
    return list(resolved)


def get_dependency_resolver(
    tree: Optional[DependencyTree], skip_test_scope: bool = True
) -> Optional[BaseDependencyResolver]:
    """Factory returning a resolver for the given input, or None for flat lists."""
    if tree is None:
        return None
    return TreeDependencyResolver(tree, skip_test_scope)
