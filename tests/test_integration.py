"""
Integration tests for dep-module-mapper.
Tests end-to-end flows from dependency files and rule files to module reports.
"""

import json

import pytest

from module_mapper.cli_config import (
    build_config,
    create_sample_config,
    get_config,
    load_config,
    reset_config,
    validate_config_values,
)
from module_mapper.dependency import Dependency
from module_mapper.dependency_resolver import (
    DependencyResolutionError,
    DependencyTree,
    TreeDependencyResolver,
    get_dependency_resolver,
    resolve_dependencies,
)
from module_mapper.error_handling import RuleConfigurationError, get_error_handler
from module_mapper.main import classify_dependencies, collect_dependencies
from module_mapper.module import ModuleDependency
from module_mapper.parsers import (
    detect_file_type,
    parse_dependency_file,
    parse_dependency_list,
    parse_dependency_tree,
    parse_pom_xml,
)
from module_mapper.reporting import build_json_report
from module_mapper.rules import load_rules_file, parse_clusion, parse_module_rules
from module_mapper.slot_strategy import SlotStrategy, SlotStrategyType

ACME_CORE = Dependency("org.acme", "acme-core", "2.1.0")
ACME_UTILS = Dependency("org.acme", "acme-utils", "2.1.0")
SLF4J = Dependency("org.slf4j", "slf4j-api", "1.7.36")
JUNIT = Dependency("junit", "junit", "4.13.2", scope="test")
HAMCREST = Dependency("org.hamcrest", "hamcrest-core", "1.3", scope="test")


def load_rules_from_data(modules):
    return parse_module_rules({"modules": modules})


class TestDependencyParsing:
    """Test dependency file parsing for all supported inputs."""

    def test_detect_file_type(self, sample_dependency_tree, sample_dependency_list, sample_pom_xml):
        """Test input detection by name and content."""
        assert detect_file_type(str(sample_dependency_tree)) == "dependency_tree"
        assert detect_file_type(str(sample_dependency_list)) == "dependency_list"
        assert detect_file_type(str(sample_pom_xml)) == "pom_xml"

    def test_parse_dependency_tree(self, sample_dependency_tree):
        """Test parsing mvn dependency:tree output."""
        tree = parse_dependency_tree(str(sample_dependency_tree))

        assert tree.projects == [Dependency("com.example", "shop-app", "1.0.0", type="war")]
        assert [d.artifact_id for d in tree.direct_dependencies] == [
            "acme-core",
            "jackson-databind",
            "acme-natives",
            "junit",
        ]
        assert tree.children[ACME_CORE] == [ACME_UTILS, SLF4J]
        assert tree.children[JUNIT] == [HAMCREST]

        natives = tree.direct_dependencies[2]
        assert natives.classifier == "linux-x86_64"
        assert natives.scope == "runtime"

    def test_parse_tree_without_project(self, temp_dir):
        """Test that a file with no tree is rejected."""
        path = temp_dir / "empty.txt"
        path.write_text("[INFO] BUILD SUCCESS\n", encoding="utf-8")

        with pytest.raises(ValueError, match="No dependency tree"):
            parse_dependency_tree(str(path))

    def test_parse_tree_skips_bad_entries(self, temp_dir):
        """Test that omitted entries are skipped and bad indentation is reported."""
        path = temp_dir / "tree.txt"
        path.write_text(
            "com.example:app:jar:1.0\n"
            "+- org.acme:acme-core:jar:2.1.0:compile\n"
            "|  \\- (org.acme:acme-utils:jar:2.1.0:compile - omitted for duplicate)\n"
            "|  |  \\- org.slf4j:slf4j-api:jar:1.7.36:compile\n"
            "\\- :broken:jar:1.0:compile\n",
            encoding="utf-8",
        )
        errors = []

        tree = parse_dependency_tree(str(path), error_callback=errors.append)

        assert tree.direct_dependencies == [ACME_CORE]
        assert tree.children[ACME_CORE] == [SLF4J]
        assert len(errors) == 1
        assert "indentation" in errors[0].message

    def test_parse_dependency_list(self, sample_dependency_list):
        """Test parsing mvn dependency:list output, keeping first occurrences."""
        dependencies = parse_dependency_list(str(sample_dependency_list))

        assert dependencies == [ACME_CORE, SLF4J, JUNIT]

    def test_parse_pom_xml(self, sample_pom_xml):
        """Test parsing declared and managed dependencies from pom.xml."""
        dependencies = parse_pom_xml(str(sample_pom_xml))

        assert [d.artifact_id for d in dependencies] == ["acme-core", "junit", "acme-managed"]
        assert dependencies[0].version == "${acme.version}"
        assert dependencies[1].scope == "test"

    def test_parse_invalid_pom_xml(self, temp_dir):
        """Test that broken XML raises ValueError and is counted."""
        path = temp_dir / "pom.xml"
        path.write_text("<project><dependencies>", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid XML"):
            parse_pom_xml(str(path))
        assert get_error_handler().get_error_stats()["PARSING_ERROR"] == 1

    def test_disallowed_extension(self, temp_dir):
        """Test that files with unexpected extensions are refused."""
        path = temp_dir / "deps.exe"
        path.write_text("g:a:jar:1.0:compile\n", encoding="utf-8")

        with pytest.raises(ValueError, match="File type not allowed"):
            parse_dependency_file(str(path))

    def test_file_size_limit(self, temp_dir, monkeypatch):
        """Test that oversized files are refused."""
        monkeypatch.setenv("DEP_MODULE_MAPPER_MAX_FILE_SIZE_MB", "1")
        reset_config()
        path = temp_dir / "big.txt"
        path.write_text("x" * (1024 * 1024 + 1), encoding="utf-8")

        with pytest.raises(ValueError, match="File too large"):
            parse_dependency_list(str(path))


class TestDependencyResolution:
    """Test transitive resolution from a dependency tree."""

    def test_resolve_tree_skips_test_scope(self, sample_dependency_tree):
        """Test closures are concatenated in root order without test scope."""
        parsed = parse_dependency_file(str(sample_dependency_tree))
        resolver = get_dependency_resolver(parsed.tree)

        resolved = resolve_dependencies(parsed.dependencies, resolver)

        assert [d.artifact_id for d in resolved] == [
            "acme-core",
            "acme-utils",
            "slf4j-api",
            "jackson-databind",
            "jackson-annotations",
            "jackson-core",
            "acme-natives",
        ]

    def test_resolve_tree_with_test_scope(self, sample_dependency_tree):
        """Test that test-scoped closures are kept on request."""
        parsed = parse_dependency_file(str(sample_dependency_tree))
        resolver = get_dependency_resolver(parsed.tree, skip_test_scope=False)

        resolved = resolve_dependencies(parsed.dependencies, resolver)

        assert resolved[-2:] == [JUNIT, HAMCREST]

    def test_unknown_root_is_skipped(self):
        """Test that an unresolvable root is reported and the pass continues."""
        tree = DependencyTree()
        tree.add_project(Dependency("com.example", "app", "1.0"))
        tree.add_edge(Dependency("com.example", "app", "1.0"), ACME_CORE)
        resolver = TreeDependencyResolver(tree)
        missing = Dependency("org.missing", "gone", "1.0")

        with pytest.raises(DependencyResolutionError):
            resolver.resolve(missing)

        resolved = resolve_dependencies([missing, ACME_CORE], resolver)

        assert resolved == [ACME_CORE]
        assert get_error_handler().get_error_stats() == {"RESOLUTION_ERROR": 1}

    def test_shared_transitives_appear_once(self):
        """Test that a dependency reachable from two roots is resolved once."""
        tree = DependencyTree()
        tree.add_edge(ACME_CORE, SLF4J)
        tree.add_edge(ACME_UTILS, SLF4J)

        resolved = resolve_dependencies([ACME_CORE, ACME_UTILS], TreeDependencyResolver(tree))

        assert resolved == [ACME_CORE, SLF4J, ACME_UTILS]

    def test_no_resolver_for_flat_lists(self):
        """Test that flat inputs need no resolver."""
        assert get_dependency_resolver(None) is None


class TestRuleFiles:
    """Test loading module rules from files."""

    def test_load_yaml_rules(self, sample_rules_yaml):
        """Test the full rule format from YAML."""
        rules = load_rules_file(str(sample_rules_yaml))

        assert [r.name for r in rules] == ["org.acme.$1", "com.fasterxml.jackson"]
        acme, jackson = rules
        assert acme.includes[0].group_id.source == r"org\.acme"
        assert acme.includes[0].artifact_id.source == "acme-(.*)"
        assert acme.excludes[0].group_id.source is None
        assert jackson.slot == "2"
        assert jackson.properties == {"jboss.api": "private"}
        assert jackson.dependencies == [
            ModuleDependency("javax.api"),
            ModuleDependency("org.slf4j", export=True),
        ]

    def test_load_toml_rules(self, sample_rules_toml):
        """Test TOML rules including the 'groupId:artifactId' string form."""
        rules = load_rules_file(str(sample_rules_toml))

        assert [r.name for r in rules] == ["org.acme.$1", "com.fasterxml.jackson"]
        exclude = rules[0].excludes[0]
        assert exclude.group_id.source == "org.acme"
        assert exclude.artifact_id.source == "acme-natives"

    def test_load_json_rules(self, temp_dir):
        """Test a bare JSON list of rules."""
        path = temp_dir / "modules.json"
        path.write_text(
            json.dumps([{"name": "lib", "base_path": "lib", "includes": [{"artifactId": "lib"}]}]),
            encoding="utf-8",
        )

        (rule,) = load_rules_file(str(path))
        assert rule.base_path == "lib"

    def test_string_clusion_with_empty_side(self):
        """Test that an empty side of the string form is unspecified."""
        clusion = parse_clusion("org.acme:", "test")

        assert clusion.group_id.source == "org.acme"
        assert not clusion.artifact_id.specified

    @pytest.mark.parametrize(
        "data,message",
        [
            ({"modules": [{"slot": "main"}]}, "'name' is required"),
            ({"modules": [{"name": "m", "include": []}]}, "unknown keys"),
            ({"modules": [{"name": "m", "includes": "g:a"}]}, "must be a list"),
            ({"modules": [{"name": "m", "includes": ["nocolon"]}]}, "groupId:artifactId"),
            ({"modules": {"name": "m"}}, "must be a list"),
            (
                {"modules": [{"name": "m", "dependencies": [{"name": "d", "export": "maybe"}]}]},
                "'export' must be true or false",
            ),
            (
                {"modules": [{"name": "m", "dependencies": [{"name": "d", "optional": 1}]}]},
                "'optional' must be true or false",
            ),
        ],
    )
    def test_invalid_rules(self, data, message):
        """Test that malformed rules raise RuleConfigurationError."""
        with pytest.raises(RuleConfigurationError, match=message):
            parse_module_rules(data)

    def test_module_dependency_flags_from_strings(self):
        """Test that quoted flag values are read by their meaning."""
        (rule,) = load_rules_from_data(
            [
                {
                    "name": "m",
                    "dependencies": [
                        {"name": "a", "export": "false", "optional": "false"},
                        {"name": "b", "export": "yes", "optional": "On"},
                    ],
                }
            ]
        )

        assert rule.dependencies == [
            ModuleDependency("a", export=False, optional=False),
            ModuleDependency("b", export=True, optional=True),
        ]

    def test_unreadable_rules_file(self, temp_dir):
        """Test that a syntax error in the file becomes RuleConfigurationError."""
        path = temp_dir / "modules.yaml"
        path.write_text("modules: [unclosed\n", encoding="utf-8")

        with pytest.raises(RuleConfigurationError, match="Cannot read rules file"):
            load_rules_file(str(path))


class TestSlotStrategy:
    """Test default slot computation."""

    def test_from_string(self):
        """Test strategy selection from configuration values."""
        assert SlotStrategy.from_string("version-major").strategy == SlotStrategyType.VERSION_MAJOR
        assert SlotStrategy.from_string("VERSION_MAJOR").strategy == SlotStrategyType.VERSION_MAJOR

        fixed = SlotStrategy.from_string("stable")
        assert fixed.strategy == SlotStrategyType.MAIN
        assert fixed.default_slot == "stable"
        assert SlotStrategy.from_string(None).default_slot == "main"

    def test_from_numeric_value(self):
        """Test that a numeric slot name is used as a fixed slot."""
        strategy = SlotStrategy.from_string(2)

        assert strategy.strategy == SlotStrategyType.MAIN
        assert strategy.default_slot == "2"

    def test_calc_slot(self):
        """Test that explicit slots win over the strategy."""
        strategy = SlotStrategy.from_string("version-major")
        rules = load_rules_from_data([{"name": "fixed", "slot": "9"}, {"name": "free"}])

        assert strategy.calc_slot(rules[0], SLF4J) == "9"
        assert strategy.calc_slot(rules[1], SLF4J) == "1"
        assert strategy.calc_slot(rules[1], Dependency("g", "a", "LATEST")) == "main"
        assert SlotStrategy.from_string("main").calc_slot(rules[1], SLF4J) == "main"


class TestConfiguration:
    """Test configuration loading and overrides."""

    def test_defaults(self):
        """Test the default configuration."""
        config = get_config()

        assert config.classification.default_slot == "main"
        assert config.classification.skip_test_scope is True
        assert config.classification.legacy_group_matching is False
        assert validate_config_values(config) == []

    def test_config_file_and_environment(self, tmp_path, monkeypatch):
        """Test that environment variables override the config file."""
        (tmp_path / ".dep-module-mapper.yaml").write_text(
            "classification:\n  default_slot: stable\n  legacy_group_matching: true\n",
            encoding="utf-8",
        )
        monkeypatch.setenv("DEP_MODULE_MAPPER_DEFAULT_SLOT", "version-major")

        config = load_config()

        assert config.classification.default_slot == "version-major"
        assert config.classification.legacy_group_matching is True

    def test_numeric_slot_in_config_file(self, tmp_path):
        """Test that a slot written as a number is loaded as a string."""
        (tmp_path / ".dep-module-mapper.yaml").write_text(
            "classification:\n  default_slot: 2\n", encoding="utf-8"
        )

        config = load_config()

        assert config.classification.default_slot == "2"
        assert SlotStrategy.from_string(config.classification.default_slot).default_slot == "2"

    def test_invalid_values_fall_back_to_defaults(self):
        """Test that invalid settings are replaced by defaults."""
        config = build_config(
            {"output": {"output_format": "xml"}, "security": {"max_file_size_mb": 0}}
        )

        assert config.output.output_format == "console"
        assert config.security.max_file_size_mb == 10

    def test_sample_config_round_trips(self, tmp_path):
        """Test that the generated sample config loads cleanly."""
        path = tmp_path / "sample.yaml"
        path.write_text(create_sample_config(), encoding="utf-8")

        config = load_config(path)
        assert validate_config_values(config) == []


class TestEndToEnd:
    """Test complete classification passes."""

    def test_tree_to_report(self, sample_dependency_tree, sample_rules_yaml):
        """Test dependency:tree input classified with the sample rules."""
        rules = load_rules_file(str(sample_rules_yaml))
        dependencies = collect_dependencies(str(sample_dependency_tree), skip_test_scope=True)

        module_map = classify_dependencies(rules, dependencies, False)
        report = build_json_report(
            module_map.aggregate(), SlotStrategy.from_string("main"), "deps-tree.txt"
        )

        assert report["total_modules"] == 5
        assert report["total_dependencies"] == 7
        assert report["source_file"] == "deps-tree.txt"
        by_name = {m["name"]: m for m in report["modules"]}
        assert list(by_name) == [
            "org.acme.core",
            "org.acme.utils",
            "org.slf4j.slf4j-api",
            "com.fasterxml.jackson",
            "org.acme.acme-natives",
        ]
        jackson = by_name["com.fasterxml.jackson"]
        assert jackson["slot"] == "2"
        assert jackson["properties"] == {"jboss.api": "private"}
        assert len(jackson["artifacts"]) == 3
        assert jackson["dependencies"][1] == {
            "name": "org.slf4j",
            "slot": None,
            "export": True,
            "optional": False,
        }
        assert by_name["org.acme.core"]["slot"] == "main"
        assert by_name["org.acme.core"]["artifacts"] == [
            "org.acme:acme-core:jar:2.1.0:compile"
        ]

    def test_tree_with_legacy_matching(self, sample_dependency_tree, sample_rules_yaml):
        """Test that legacy group matching defeats group-id based rules."""
        rules = load_rules_file(str(sample_rules_yaml))
        dependencies = collect_dependencies(str(sample_dependency_tree), skip_test_scope=True)

        module_map = classify_dependencies(rules, dependencies, True)
        names = [m.name for m in module_map.modules]

        assert "org.acme.acme-core" in names
        assert "com.fasterxml.jackson.core.jackson-databind" in names
        assert len(names) == 7

    def test_version_major_slots(self, sample_dependency_tree, sample_rules_yaml):
        """Test the version-major default slot strategy."""
        rules = load_rules_file(str(sample_rules_yaml))
        dependencies = collect_dependencies(str(sample_dependency_tree), skip_test_scope=True)

        report = build_json_report(
            classify_dependencies(rules, dependencies, False).aggregate(),
            SlotStrategy.from_string("version-major"),
        )
        slots = {m["name"]: m["slot"] for m in report["modules"]}

        assert slots["org.acme.core"] == "2"
        assert slots["org.slf4j.slf4j-api"] == "1"
        assert slots["com.fasterxml.jackson"] == "2"
        assert "source_file" not in report

    def test_list_without_rules(self, sample_dependency_list):
        """Test default modules for a flat list without test scope."""
        dependencies = collect_dependencies(str(sample_dependency_list), skip_test_scope=True)

        module_map = classify_dependencies([], dependencies, False)

        assert module_map.describe() == (
            "org.acme.acme-core:\n  acme-core\norg.slf4j.slf4j-api:\n  slf4j-api"
        )

    def test_pom_includes_managed_dependencies(self, sample_pom_xml):
        """Test that managed dependencies are classified as roots."""
        dependencies = collect_dependencies(str(sample_pom_xml), skip_test_scope=False)

        module_map = classify_dependencies([], dependencies, False)

        assert [m.name for m in module_map.modules] == [
            "org.acme.acme-core",
            "junit",
            "org.acme.acme-managed",
        ]
