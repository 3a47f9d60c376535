"""
Coordinate matching for module rules.

A ``Clusion`` is one inclusion or exclusion entry of a module rule. It holds
an optional group-id criterion and an optional artifact-id criterion; each
criterion is a regular expression when its source compiles and a literal
otherwise.
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Pattern, Sequence, Tuple

from .dependency import Dependency

_PLACEHOLDER = re.compile(r"\$(\d+)")


def try_compile(source: Optional[str]) -> Optional[Pattern]:
    """Compile ``source`` as a regular expression, or return None if it is not one."""
    if source is None:
        return None
    try:
        return re.compile(source)
    except re.error:
        return None


def translate_name(template: str, captures: Sequence[Optional[str]]) -> str:
    """
    Replace ``$1``, ``$2``, ... in ``template`` with the captured groups.

    Placeholders without a corresponding captured group (out of range, or a
    group that did not participate in the match) are left verbatim.
    """

    def _replace(match) -> str:
        index = int(match.group(1))
        if 1 <= index <= len(captures) and captures[index - 1] is not None:
            return captures[index - 1]
        return match.group(0)

    return _PLACEHOLDER.sub(_replace, template)


@dataclass(frozen=True)
class MatchContext:
    """Outcome of a match, with the capture groups of the regex that drove it."""

    matched: bool
    groups: Tuple[Optional[str], ...] = ()

    @classmethod
    def from_pattern(cls, pattern: Pattern, value: str) -> "MatchContext":
        match = pattern.fullmatch(value)
        if match is None:
            return cls(False)
        return cls(True, match.groups())

    def derive(self, matched: bool) -> "MatchContext":
        """A context with a new outcome that keeps this context's groups if it matched."""
        return MatchContext(matched, self.groups if self.matched else ())

    @property
    def has_group_match(self) -> bool:
        return self.matched and len(self.groups) > 0

    def translate_name(self, template: str) -> str:
        if not self.has_group_match:
            return template
        return translate_name(template, self.groups)

    def __bool__(self) -> bool:
        return self.matched


NO_MATCH = MatchContext(False)


@dataclass(frozen=True)
class CoordinateCriterion:
    """A literal value with its compiled pattern, if the value is a valid regex."""

    source: Optional[str] = None
    pattern: Optional[Pattern] = field(default=None, compare=False)

    @classmethod
    def from_source(cls, source: Optional[str]) -> "CoordinateCriterion":
        return cls(source, try_compile(source))

    @property
    def specified(self) -> bool:
        return self.source is not None

    def evaluate(self, value: str) -> Optional[MatchContext]:
        """
        Match ``value`` against this criterion.

        Returns:
            A MatchContext, or None if the criterion is unspecified.
        """
        if self.pattern is not None:
            return MatchContext.from_pattern(self.pattern, value)
        if self.source is not None:
            return MatchContext(self.source == value)
        return None


class Clusion:
    """One include or exclude entry: group-id and artifact-id criteria."""

    def __init__(self, group_id: Optional[str] = None, artifact_id: Optional[str] = None):
        self.group_id = CoordinateCriterion.from_source(group_id)
        self.artifact_id = CoordinateCriterion.from_source(artifact_id)

    def matches(
        self, dependency: Dependency, legacy_group_matching: bool = False
    ) -> MatchContext:
        """
        Check whether the dependency satisfies every specified criterion.

        At least one criterion must be specified. With ``legacy_group_matching``
        the group-id criterion is compared against the artifact id, which is
        how the JBoss modules Maven plugin behaves.
        """
        group_input = (
            dependency.artifact_id if legacy_group_matching else dependency.group_id
        )
        group_match = self.group_id.evaluate(group_input)
        if group_match is not None and not group_match.matched:
            return NO_MATCH

        artifact_match = self.artifact_id.evaluate(dependency.artifact_id)
        if artifact_match is not None:
            if not artifact_match.matched:
                return NO_MATCH
            if artifact_match.groups or group_match is None:
                return artifact_match
            return group_match

        return group_match if group_match is not None else NO_MATCH

    def __repr__(self) -> str:
        return f"Clusion({self})"

    def __str__(self) -> str:
        return f"{self.group_id.source or ''}:{self.artifact_id.source or ''}"
