"""
Module rules and concrete modules.

A ``ModuleRule`` is declared by the user and may be a template: its name can
contain ``$n`` placeholders that are filled from the capture groups of the
include that matched. Concrete modules created from a template are plain
``ModuleRule`` instances carrying only a name and a slot.
"""

from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional

from .dependency import Dependency, is_blank
from .error_handling import InvalidCoordinateError
from .matching import NO_MATCH, Clusion, MatchContext


class ModuleKey(NamedTuple):
    """Aggregation identity of a module."""

    name: str
    slot: Optional[str] = None

    def __str__(self) -> str:
        return self.name if self.slot is None else f"{self.name}:{self.slot}"


@dataclass(frozen=True)
class ModuleDependency:
    """A module-level dependency declared in addition to the computed ones."""

    name: str
    slot: Optional[str] = None
    export: bool = False
    optional: bool = False


def _first_match(
    clusions: Optional[List[Clusion]], dependency: Dependency, legacy_group_matching: bool
) -> MatchContext:
    for clusion in clusions or []:
        context = clusion.matches(dependency, legacy_group_matching)
        if context.matched:
            return context
    return NO_MATCH


@dataclass(eq=False)
class ModuleRule:
    """
    A named module and the rules selecting the dependencies it contains.

    Instances compare by identity; use ``key`` to compare modules by name
    and slot.
    """

    name: str
    slot: Optional[str] = None
    base_path: Optional[str] = None
    includes: List[Clusion] = field(default_factory=list)
    excludes: List[Clusion] = field(default_factory=list)
    properties: Dict[str, str] = field(default_factory=dict)
    dependencies: List[ModuleDependency] = field(default_factory=list)

    @property
    def key(self) -> ModuleKey:
        return ModuleKey(self.name, self.slot)

    @property
    def has_dependencies(self) -> bool:
        return bool(self.dependencies)

    def match(
        self, dependency: Dependency, legacy_group_matching: bool = False
    ) -> MatchContext:
        """
        Check if the dependency belongs to this module.

        The first matching include wins; any matching exclude vetoes it. The
        include's capture groups are kept whenever an include matched so
        callers can still inspect them on an excluded dependency.
        """
        included = _first_match(self.includes, dependency, legacy_group_matching)
        if not included.matched:
            return NO_MATCH
        excluded = _first_match(self.excludes, dependency, legacy_group_matching)
        return included.derive(not excluded.matched)

    def derive(self, context: MatchContext) -> "ModuleRule":
        """Create the concrete module for a match carrying capture groups."""
        return ModuleRule(name=context.translate_name(self.name), slot=self.slot)

    def __repr__(self) -> str:
        return (
            f"ModuleRule(name={self.name!r}, slot={self.slot!r}, "
            f"includes={self.includes!r}, excludes={self.excludes!r})"
        )


def create_default_name(group_id: str, artifact_id: str) -> str:
    """
    Construct the default module name for a dependency no rule matched.

    The group id alone is used when it equals the artifact id or already ends
    with ``.<artifactId>``; otherwise both are joined with a dot.

    Raises:
        InvalidCoordinateError: If either id is blank.
    """
    if is_blank(group_id):
        raise InvalidCoordinateError("groupId must not be blank")
    if is_blank(artifact_id):
        raise InvalidCoordinateError("artifactId must not be blank")

    if group_id == artifact_id or group_id.endswith("." + artifact_id):
        return group_id
    return f"{group_id}.{artifact_id}"


def create_default_module(dependency: Dependency) -> ModuleRule:
    return ModuleRule(
        name=create_default_name(dependency.group_id, dependency.artifact_id)
    )
