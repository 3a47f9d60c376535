"""
Loading of module rules from YAML, TOML or JSON files.

A rules file holds a ``modules`` list (a bare top-level list is accepted as
well)::

    modules:
      - name: org.acme.$1
        slot: main
        includes:
          - artifactId: acme-(.*)
        excludes:
          - "org.acme:acme-test.*"
        properties:
          jboss.api: private
        dependencies:
          - name: javax.api
          - {name: org.slf4j, export: true}

Any capture group in a matching include makes the dependency go to a new
module built from the templated name and the slot only, even when the name
has no ``$n``. Such a module has no ``properties``, ``basePath`` or
``dependencies``. Use non-capturing groups for alternation
(``acme-(?:core|utils)``) to keep the rule itself as the module.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml
import yaml

from .error_handling import ErrorCategory, RuleConfigurationError, get_error_handler
from .matching import Clusion
from .module import ModuleDependency, ModuleRule

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}

_RULE_KEYS = {
    "name",
    "slot",
    "basePath",
    "base_path",
    "includes",
    "excludes",
    "properties",
    "dependencies",
}


def _optional_string(value: Any, field_name: str, where: str) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        raise RuleConfigurationError(f"{where}: '{field_name}' must be a string")
    return str(value)


def parse_clusion(entry: Any, where: str) -> Clusion:
    """
    Build a Clusion from ``{groupId, artifactId}`` or a ``"groupId:artifactId"`` string.

    In the string form an empty side leaves that criterion unspecified.
    """
    if isinstance(entry, str):
        group_id, separator, artifact_id = entry.partition(":")
        if not separator:
            raise RuleConfigurationError(
                f"{where}: expected 'groupId:artifactId', got '{entry}'"
            )
        return Clusion(group_id or None, artifact_id or None)

    if not isinstance(entry, dict):
        raise RuleConfigurationError(f"{where}: clusion must be a mapping or string")

    unknown = set(entry) - {"groupId", "artifactId", "group_id", "artifact_id"}
    if unknown:
        raise RuleConfigurationError(f"{where}: unknown keys {sorted(unknown)}")

    group_id = entry.get("groupId", entry.get("group_id"))
    artifact_id = entry.get("artifactId", entry.get("artifact_id"))
    if group_id is None and artifact_id is None:
        get_error_handler().warning(
            ErrorCategory.CONFIGURATION,
            "Clusion without groupId and artifactId never matches",
            "rules",
            "parse_clusion",
            details={"location": where},
        )
    return Clusion(
        _optional_string(group_id, "groupId", where),
        _optional_string(artifact_id, "artifactId", where),
    )


def _parse_flag(value: Any, field_name: str, where: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
    raise RuleConfigurationError(
        f"{where}: '{field_name}' must be true or false, got {value!r}"
    )


def _parse_module_dependency(entry: Any, where: str) -> ModuleDependency:
    if isinstance(entry, str):
        return ModuleDependency(name=entry)
    if not isinstance(entry, dict) or not entry.get("name"):
        raise RuleConfigurationError(f"{where}: module dependency requires a 'name'")
    return ModuleDependency(
        name=str(entry["name"]),
        slot=_optional_string(entry.get("slot"), "slot", where),
        export=_parse_flag(entry.get("export", False), "export", where),
        optional=_parse_flag(entry.get("optional", False), "optional", where),
    )


def _parse_list(value: Any, field_name: str, where: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise RuleConfigurationError(f"{where}: '{field_name}' must be a list")
    return value


def parse_module_rule(data: Dict[str, Any], index: int = 0) -> ModuleRule:
    """Build one ModuleRule from its mapping form."""
    where = f"modules[{index}]"
    if not isinstance(data, dict):
        raise RuleConfigurationError(f"{where}: module must be a mapping")

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise RuleConfigurationError(f"{where}: 'name' is required")
    where = f"{where} ({name})"

    unknown = set(data) - _RULE_KEYS
    if unknown:
        raise RuleConfigurationError(f"{where}: unknown keys {sorted(unknown)}")

    properties = data.get("properties") or {}
    if not isinstance(properties, dict):
        raise RuleConfigurationError(f"{where}: 'properties' must be a mapping")

    return ModuleRule(
        name=name,
        slot=_optional_string(data.get("slot"), "slot", where),
        base_path=_optional_string(data.get("basePath", data.get("base_path")), "basePath", where),
        includes=[
            parse_clusion(entry, f"{where}.includes[{i}]")
            for i, entry in enumerate(_parse_list(data.get("includes"), "includes", where))
        ],
        excludes=[
            parse_clusion(entry, f"{where}.excludes[{i}]")
            for i, entry in enumerate(_parse_list(data.get("excludes"), "excludes", where))
        ],
        properties={str(k): str(v) for k, v in properties.items()},
        dependencies=[
            _parse_module_dependency(entry, f"{where}.dependencies[{i}]")
            for i, entry in enumerate(
                _parse_list(data.get("dependencies"), "dependencies", where)
            )
        ],
    )


def parse_module_rules(data: Any) -> List[ModuleRule]:
    """Build the ordered rule list from parsed file contents."""
    if data is None:
        return []
    if isinstance(data, dict):
        data = data.get("modules", [])
    if not isinstance(data, list):
        raise RuleConfigurationError("'modules' must be a list")
    return [parse_module_rule(entry, index) for index, entry in enumerate(data)]


def load_rules_file(file_path: str) -> List[ModuleRule]:
    """
    Load module rules from a ``.yaml``/``.yml``, ``.toml`` or ``.json`` file.

    Raises:
        RuleConfigurationError: If the file cannot be parsed or a rule is invalid
    """
    path = Path(file_path)
    suffix = path.suffix.lower()

    try:
        with open(path, encoding="utf-8") as f:
            if suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            elif suffix == ".toml":
                data = toml.load(f)
            elif suffix == ".json":
                data = json.load(f)
            else:
                raise RuleConfigurationError(f"Unsupported rules file type: {suffix}")
    except (OSError, yaml.YAMLError, toml.TomlDecodeError, json.JSONDecodeError) as e:
        get_error_handler().error(
            ErrorCategory.CONFIGURATION,
            f"Cannot read rules file: {e}",
            "rules",
            "load_rules_file",
            exception=e,
            details={"file_path": path.name},
        )
        raise RuleConfigurationError(f"Cannot read rules file {path.name}: {e}") from e

    return parse_module_rules(data)
