import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .cli_config import get_config
from .dependency import Dependency, parse_coordinate
from .dependency_resolver import DependencyTree
from .error_handling import (
    ErrorCallback,
    ErrorCategory,
    InvalidCoordinateError,
    get_error_handler,
    log_parsing_error,
)

_LOG_PREFIX = re.compile(r"^\[(?:INFO|DEBUG|WARNING|WARN)\]\s?")
_TREE_CHILD = re.compile(r"^(?P<indent>(?:[| ]  )*)[+\\]- (?P<content>.+)$")
_COORDINATE = re.compile(r"^[\w.\-]+:[\w.\-]+(?::[\w.\-${}]*){2,4}$")

_POM_NAMESPACE = "{http://maven.apache.org/POM/4.0.0}"


@dataclass
class ParsedDependencies:
    """Result of parsing a dependency file."""

    file_type: str
    dependencies: List[Dependency]
    tree: Optional[DependencyTree] = None


def _validate_file_path(file_path: str) -> Path:
    """
    Validate a dependency file path.

    Raises:
        ValueError: If the file is missing, not a regular file, has an
            extension that is not allowed or exceeds the size limit.
    """
    if not file_path or not isinstance(file_path, str):
        raise ValueError("File path must be a non-empty string")

    try:
        path = Path(file_path).resolve()
    except (OSError, ValueError) as e:
        raise ValueError(f"Invalid file path: {e}")

    if not path.exists():
        raise ValueError(f"File does not exist: {path}")
    if not path.is_file():
        raise ValueError(f"Path is not a file: {path}")

    config = get_config()
    if path.suffix.lower() not in set(config.security.allowed_file_extensions):
        raise ValueError(f"File type not allowed: {path.suffix}")

    try:
        file_size = path.stat().st_size
    except OSError as e:
        raise ValueError(f"Cannot access file: {e}")
    if file_size > config.security.max_file_size_bytes:
        raise ValueError(
            f"File too large: {file_size} bytes (max: {config.security.max_file_size_bytes})"
        )

    return path


def _read_lines(path: Path) -> List[str]:
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            return [_LOG_PREFIX.sub("", line.rstrip("\r\n")) for line in f]
    except PermissionError:
        raise ValueError("Permission denied reading file")
    except OSError as e:
        raise ValueError(f"Error reading file: {e}")


def _coordinate_token(content: str) -> Optional[str]:
    """Extract the coordinate from a tree or list entry, None for omitted entries."""
    content = content.strip()
    if content.startswith("("):
        # Verbose tree output wraps omitted duplicates and conflicts in parentheses
        return None
    token = content.split()[0] if content else ""
    return token if _COORDINATE.match(token) else None


def parse_dependency_tree(
    file_path: str, error_callback: Optional[ErrorCallback] = None
) -> DependencyTree:
    """
    Parse the output of ``mvn dependency:tree``.

    Each project line (a coordinate without a branch marker) starts a new
    tree; ``+-`` and ``\\-`` lines are attached to the nearest shallower
    entry. Lines that are not part of a tree are ignored.

    Raises:
        ValueError: If the file cannot be read or contains no tree.
    """
    error_handler = get_error_handler()
    if error_callback:
        error_handler.register_callback(error_callback, ErrorCategory.PARSING)

    validated_path = _validate_file_path(file_path)
    tree = DependencyTree()
    # stack[i] is the most recent node at depth i
    stack: List[Dependency] = []

    for line_num, line in enumerate(_read_lines(validated_path), 1):
        child = _TREE_CHILD.match(line)
        if child is None:
            token = _coordinate_token(line) if line and not line[0].isspace() else None
            if token is None:
                continue
            try:
                project = parse_coordinate(token)
            except InvalidCoordinateError as e:
                log_parsing_error(
                    str(e), "parsers", "parse_dependency_tree", line_num, file_path, e
                )
                continue
            tree.add_project(project)
            stack = [project]
            continue

        if not stack:
            log_parsing_error(
                "Tree entry without a project line",
                "parsers",
                "parse_dependency_tree",
                line_num,
                file_path,
            )
            continue

        token = _coordinate_token(child.group("content"))
        if token is None:
            continue

        depth = len(child.group("indent")) // 3 + 1
        try:
            dependency = parse_coordinate(token)
        except InvalidCoordinateError as e:
            log_parsing_error(
                str(e), "parsers", "parse_dependency_tree", line_num, file_path, e
            )
            continue

        if depth > len(stack):
            log_parsing_error(
                f"Unexpected indentation for {token}",
                "parsers",
                "parse_dependency_tree",
                line_num,
                file_path,
            )
            depth = len(stack)

        del stack[depth:]
        tree.add_edge(stack[depth - 1], dependency)
        stack.append(dependency)

    if not tree.projects:
        raise ValueError(f"No dependency tree found in {validated_path.name}")

    return tree


def parse_dependency_list(
    file_path: str, error_callback: Optional[ErrorCallback] = None
) -> List[Dependency]:
    """
    Parse the output of ``mvn dependency:list``.

    Returns:
        List[Dependency]: Resolved dependencies in file order, without duplicates
    """
    error_handler = get_error_handler()
    if error_callback:
        error_handler.register_callback(error_callback, ErrorCategory.PARSING)

    validated_path = _validate_file_path(file_path)
    dependencies: Dict[Dependency, None] = {}

    for line_num, line in enumerate(_read_lines(validated_path), 1):
        token = _coordinate_token(line)
        if token is None:
            continue
        try:
            dependencies.setdefault(parse_coordinate(token), None)
        except InvalidCoordinateError as e:
            log_parsing_error(
                str(e), "parsers", "parse_dependency_list", line_num, file_path, e
            )

    return list(dependencies)


def _child_text(element: ET.Element, name: str) -> str:
    child = element.find(_POM_NAMESPACE + name)
    if child is None:
        child = element.find(name)
    return (child.text or "").strip() if child is not None else ""


def _pom_dependencies(root: ET.Element, path: str) -> List[ET.Element]:
    elements = root.findall("/".join(_POM_NAMESPACE + part for part in path.split("/")))
    return elements or root.findall(path)


def parse_pom_xml(
    file_path: str, error_callback: Optional[ErrorCallback] = None
) -> List[Dependency]:
    """
    Parses a Maven pom.xml file and returns its root dependencies.

    Both ``dependencies`` and ``dependencyManagement`` entries are returned,
    declared dependencies first. Plugin dependencies are ignored.

    Args:
        file_path: Path to the pom.xml file
        error_callback: Optional callback for handling parsing errors

    Raises:
        ValueError: If file cannot be read or contains invalid XML
    """
    error_handler = get_error_handler()
    if error_callback:
        error_handler.register_callback(error_callback, ErrorCategory.PARSING)

    validated_path = _validate_file_path(file_path)

    if not validated_path.name.endswith("pom.xml"):
        raise ValueError("File must be a pom.xml file (ending with 'pom.xml')")

    try:
        root = ET.parse(validated_path).getroot()
    except ET.ParseError as e:
        error_handler.error(
            ErrorCategory.PARSING,
            f"Invalid XML format in pom.xml: {e}",
            "parsers",
            "parse_pom_xml",
            exception=e,
            details={"file_path": validated_path.name},
        )
        raise ValueError(f"Invalid XML format: {e}")

    dependencies: Dict[Dependency, None] = {}
    elements = _pom_dependencies(root, "dependencies/dependency") + _pom_dependencies(
        root, "dependencyManagement/dependencies/dependency"
    )

    for element in elements:
        group_id = _child_text(element, "groupId")
        artifact_id = _child_text(element, "artifactId")
        if not group_id or not artifact_id:
            log_parsing_error(
                "Dependency without groupId or artifactId skipped",
                "parsers",
                "parse_pom_xml",
                file_path=file_path,
            )
            continue
        dependency = Dependency(
            group_id=group_id,
            artifact_id=artifact_id,
            version=_child_text(element, "version"),
            classifier=_child_text(element, "classifier"),
            type=_child_text(element, "type") or "jar",
            scope=_child_text(element, "scope") or "compile",
        )
        dependencies.setdefault(dependency, None)

    return list(dependencies)


def detect_file_type(file_path: str) -> str:
    """
    Detect the dependency file type.

    ``pom.xml`` files are recognized by name; plugin output is recognized by
    its content, a tree having at least one branch marker.
    """
    path = Path(file_path)
    if path.name.lower().endswith("pom.xml"):
        return "pom_xml"

    validated_path = _validate_file_path(file_path)
    for line in _read_lines(validated_path):
        if _TREE_CHILD.match(line):
            return "dependency_tree"
    return "dependency_list"


def parse_dependency_file(
    file_path: str, error_callback: Optional[ErrorCallback] = None
) -> ParsedDependencies:
    """
    Parse any supported dependency file type.

    For a dependency tree the returned dependencies are the direct
    dependencies of the projects; the tree itself is attached so that they
    can be resolved transitively.

    Raises:
        ValueError: If file type is not supported or parsing fails
    """
    file_type = detect_file_type(file_path)

    if file_type == "dependency_tree":
        tree = parse_dependency_tree(file_path, error_callback)
        return ParsedDependencies(file_type, tree.direct_dependencies, tree)

    parser_map: Dict[str, Callable[..., List[Dependency]]] = {
        "dependency_list": parse_dependency_list,
        "pom_xml": parse_pom_xml,
    }
    return ParsedDependencies(file_type, parser_map[file_type](file_path, error_callback))
