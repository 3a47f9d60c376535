"""Dependency coordinates as consumed by the classification engine."""

from dataclasses import dataclass
from typing import Optional

from .error_handling import InvalidCoordinateError


def is_blank(value: Optional[str]) -> bool:
    """Return True for None, empty or whitespace-only strings."""
    return value is None or not value.strip()


@dataclass(frozen=True)
class Dependency:
    """A resolved library dependency identified by its full coordinate tuple."""

    group_id: str
    artifact_id: str
    version: str = ""
    classifier: str = ""
    type: str = "jar"
    scope: str = "compile"

    @property
    def coordinates(self) -> str:
        """Canonical ``groupId:artifactId:type[:classifier]:version:scope`` form."""
        parts = [self.group_id, self.artifact_id, self.type]
        if self.classifier:
            parts.append(self.classifier)
        parts.append(self.version)
        parts.append(self.scope)
        return ":".join(parts)

    def __str__(self) -> str:
        return self.coordinates


def parse_coordinate(text: str, default_scope: str = "compile") -> Dependency:
    """
    Parse a Maven coordinate string.

    Accepted forms are the ones printed by the dependency plugin and the short
    forms users write by hand::

        groupId:artifactId
        groupId:artifactId:version
        groupId:artifactId:type:version
        groupId:artifactId:type:version:scope
        groupId:artifactId:type:classifier:version:scope

    Raises:
        InvalidCoordinateError: If the string has fewer than two segments, more
            than six, or a blank group or artifact id.
    """
    tokens = [token.strip() for token in (text or "").strip().split(":")]

    if len(tokens) < 2 or len(tokens) > 6:
        raise InvalidCoordinateError(f"Invalid dependency coordinate: '{text}'")

    group_id, artifact_id = tokens[0], tokens[1]
    version = ""
    classifier = ""
    type_ = "jar"
    scope = default_scope

    if len(tokens) == 3:
        version = tokens[2]
    elif len(tokens) == 4:
        type_, version = tokens[2], tokens[3]
    elif len(tokens) == 5:
        type_, version, scope = tokens[2], tokens[3], tokens[4]
    elif len(tokens) == 6:
        type_, classifier, version, scope = tokens[2:6]

    if is_blank(group_id) or is_blank(artifact_id):
        raise InvalidCoordinateError(
            f"Dependency coordinate requires groupId and artifactId: '{text}'"
        )

    return Dependency(
        group_id=group_id,
        artifact_id=artifact_id,
        version=version,
        classifier=classifier,
        type=type_ or "jar",
        scope=scope or default_scope,
    )
