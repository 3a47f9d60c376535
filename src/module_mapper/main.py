import json
import logging
import time
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .cli_config import (
    CONFIG_SECTIONS,
    ComprehensiveConfig,
    apply_config_section,
    create_sample_config,
    get_config,
    load_config,
    load_config_file,
    validate_config_values,
)
from .dependency import Dependency
from .dependency_resolver import TEST_SCOPE, get_dependency_resolver, resolve_dependencies
from .error_handling import (
    InvalidCoordinateError,
    RuleConfigurationError,
    setup_error_handling,
)
from .module import ModuleRule
from .module_map import ModuleMap
from .parsers import parse_dependency_file
from .reporting import ModuleReporter, build_json_report
from .rules import load_rules_file
from .slot_strategy import SlotStrategy
from .structured_logging import (
    configure_logging,
    log_classification_complete,
    log_classification_start,
)

console = Console()


def collect_dependencies(
    file_path: str, skip_test_scope: bool, verbose: bool = False
) -> List[Dependency]:
    """Parse a dependency file and resolve it into the list to classify."""
    try:
        parsed = parse_dependency_file(file_path)
    except ValueError as e:
        raise click.ClickException(f"Failed to parse dependency file: {e}")

    if verbose:
        console.print(
            f"📁 {Path(file_path).name}: {parsed.file_type}, "
            f"{len(parsed.dependencies)} root dependencies",
            style="blue",
        )

    resolver = get_dependency_resolver(parsed.tree, skip_test_scope)
    if resolver is not None:
        return resolve_dependencies(parsed.dependencies, resolver)

    if parsed.file_type == "pom_xml" and verbose:
        console.print(
            "ℹ️  pom.xml input lists direct dependencies only; "
            "use 'mvn dependency:tree' output to include transitive ones.",
            style="yellow",
        )

    if skip_test_scope:
        return [d for d in parsed.dependencies if d.scope != TEST_SCOPE]
    return list(parsed.dependencies)


def classify_dependencies(
    rules: List[ModuleRule],
    dependencies: List[Dependency],
    legacy_group_matching: bool,
    source: str = "",
) -> ModuleMap:
    """Run one classification pass over ``dependencies``."""
    pass_id = f"pass_{uuid.uuid4().hex[:12]}"
    started = time.monotonic()
    log_classification_start(pass_id, source, len(dependencies))

    module_map = ModuleMap(rules, legacy_group_matching=legacy_group_matching)
    for dependency in dependencies:
        module_map.classify(dependency)

    log_classification_complete(
        pass_id,
        int((time.monotonic() - started) * 1000),
        len(module_map),
        len(dependencies),
    )
    return module_map


def output_json_results(report: Dict[str, Any], output_file: Optional[str] = None) -> None:
    """Export results as JSON."""
    json_output = json.dumps(report, indent=2, ensure_ascii=False)

    if output_file:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(json_output)
        console.print(f"✅ Results saved to {output_file}", style="green")
    else:
        click.echo(json_output)


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.pass_context
def cli(ctx, version):
    """
    📦 dep-module-mapper: group resolved Maven dependencies into modules.

    Dependencies are assigned to named modules by include/exclude rules;
    dependencies no rule matches get a module named after their coordinates.
    """
    if version:
        console.print(f"dep-module-mapper version {__version__}", style="bold blue")
        ctx.exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, readable=True, dir_okay=False))
@click.option(
    "--rules",
    "-r",
    "rules_file",
    type=click.Path(exists=True, readable=True, dir_okay=False),
    help="Module rules file (YAML, TOML or JSON)",
)
@click.option(
    "--default-slot",
    help="Slot for modules without one; 'version-major' uses the major version",
)
@click.option(
    "--legacy-group-matching",
    is_flag=True,
    help="Compare groupId criteria against the artifactId (JBoss modules plugin behaviour)",
)
@click.option(
    "--include-test-scope",
    is_flag=True,
    help="Keep test-scoped dependencies",
)
@click.option(
    "--output-format",
    type=click.Choice(["console", "json"], case_sensitive=False),
    help="Output format for results (default from config or console)",
)
@click.option(
    "--output-file",
    "-o",
    type=click.Path(dir_okay=False),
    help="Save results to file (JSON format only)",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-critical output")
@click.option("--verbose", "-v", is_flag=True, help="Print the full module map")
def classify(
    file_path: str,
    rules_file: Optional[str],
    default_slot: Optional[str],
    legacy_group_matching: bool,
    include_test_scope: bool,
    output_format: Optional[str],
    output_file: Optional[str],
    quiet: bool,
    verbose: bool,
) -> None:
    """
    Classify the dependencies of FILE_PATH into modules.

    FILE_PATH is the output of 'mvn dependency:tree', the output of
    'mvn dependency:list', or a pom.xml.

    Examples:

      dep-module-mapper classify deps-tree.txt --rules modules.yaml

      dep-module-mapper classify deps-list.txt -r modules.toml --output-format json -o modules.json

      dep-module-mapper classify deps-tree.txt --default-slot version-major -v
    """
    config = load_config()
    classification = config.classification
    verbose = verbose or config.output.verbose
    quiet = quiet or config.output.quiet
    final_format = (output_format or config.output.output_format).lower()
    final_output_file = output_file or config.output.output_file

    setup_error_handling(getattr(logging, config.logging.log_level.upper(), logging.WARNING))
    configure_logging(
        config.logging.log_level, config.logging.enable_json, config.logging.log_format
    )

    if classification.skip:
        if not quiet:
            console.print("⏭️  Skipping module classification since skip is set.", style="yellow")
        return
    if final_output_file and final_format != "json":
        raise click.ClickException("Output file can only be used with JSON format")

    try:
        rules = load_rules_file(rules_file) if rules_file else []
    except RuleConfigurationError as e:
        raise click.ClickException(str(e))

    slot_strategy = SlotStrategy.from_string(default_slot or classification.default_slot)
    final_legacy = legacy_group_matching or classification.legacy_group_matching

    dependencies = collect_dependencies(
        file_path,
        skip_test_scope=classification.skip_test_scope and not include_test_scope,
        verbose=verbose and not quiet,
    )
    if not dependencies:
        if not quiet:
            console.print("ℹ️  No dependencies found in the file.", style="yellow")
        return

    try:
        module_map = classify_dependencies(rules, dependencies, final_legacy, file_path)
    except InvalidCoordinateError as e:
        raise click.ClickException(f"Classification failed: {e}")

    if verbose and not quiet and final_format == "console":
        console.print("Modules:\n" + module_map.describe(), style="dim", highlight=False)

    aggregation = module_map.aggregate()

    if final_format == "json":
        output_json_results(
            build_json_report(aggregation, slot_strategy, file_path), final_output_file
        )
    elif not quiet:
        ModuleReporter(console).print_module_map(aggregation, slot_strategy, file_path, verbose)


@cli.group()
def rules():
    """Module rule commands."""
    pass


@rules.command("validate")
@click.argument("rules_file", type=click.Path(exists=True, readable=True, dir_okay=False))
def rules_validate(rules_file: str):
    """Load a rules file and list the rules it declares."""
    try:
        module_rules = load_rules_file(rules_file)
    except RuleConfigurationError as e:
        raise click.ClickException(f"Invalid rules file: {e}")

    table = Table(title=f"📋 {Path(rules_file).name}")
    table.add_column("#", justify="right")
    table.add_column("Module", style="bold")
    table.add_column("Slot")
    table.add_column("Includes")
    table.add_column("Excludes")

    for index, rule in enumerate(module_rules, 1):
        table.add_row(
            str(index),
            rule.name,
            rule.slot or "-",
            ", ".join(str(c) for c in rule.includes) or "-",
            ", ".join(str(c) for c in rule.excludes) or "-",
        )
        if not rule.includes:
            console.print(
                f"⚠️  Module '{rule.name}' has no includes and will never match",
                style="yellow",
            )

    console.print(table)
    console.print(f"✅ {len(module_rules)} module rules are valid", style="green")


@cli.command()
def info():
    """Show information about supported inputs and usage examples."""
    info_text = """
[bold blue]📋 Supported Inputs:[/bold blue]

  • [cyan]mvn dependency:tree[/cyan] output  - resolved transitively from the tree
  • [cyan]mvn dependency:list[/cyan] output  - already resolved, used as is
  • [cyan]pom.xml[/cyan]                    - direct and managed dependencies only

[bold blue]🧩 Rules:[/bold blue]

  Rules are tried in order; the first module whose includes match and whose
  excludes do not match wins. groupId/artifactId values are regular
  expressions matched against the whole id. A module name may use $1, $2, ...
  to insert capture groups, e.g. [cyan]org.acme.$1[/cyan] with [cyan]acme-(.*)[/cyan].

  Dependencies no rule matches get a default module: the groupId if it
  ends with the artifactId, otherwise groupId.artifactId.

[bold blue]💡 Examples:[/bold blue]

  mvn dependency:tree -DoutputFile=deps-tree.txt
  dep-module-mapper classify deps-tree.txt --rules modules.yaml
  dep-module-mapper rules validate modules.yaml
"""
    console.print(Panel(info_text, title="dep-module-mapper", border_style="blue"))


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command("init")
@click.option(
    "--path",
    type=click.Path(),
    default=".dep-module-mapper.yaml",
    help="Path where to create the config file",
    show_default=True,
)
@click.option("--force", is_flag=True, help="Overwrite existing config file")
def config_init(path: str, force: bool):
    """Create a sample configuration file."""
    config_path = Path(path)

    if config_path.exists() and not force:
        console.print(f"⚠️  Config file already exists at {config_path}", style="yellow")
        console.print("Use --force to overwrite", style="dim")
        return

    try:
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_sample_config())
    except OSError as e:
        raise click.ClickException(f"Failed to create config file: {e}")

    console.print(f"✅ Created configuration file at {config_path}", style="green")


@config.command("show")
def config_show():
    """Show current configuration settings."""
    current_config = get_config()

    console.print(Panel("[bold blue]🔧 Configuration[/bold blue]", border_style="blue"))

    for section, values in current_config.to_dict().items():
        console.print(f"\n[bold cyan]{section.title()} Settings:[/bold cyan]")
        for key, value in values.items():
            console.print(f"  {key}: {value}")


@config.command("validate")
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
def config_validate(config_file: str):
    """Validate a configuration file."""
    config_data = load_config_file(Path(config_file))

    if not isinstance(config_data, dict):
        raise click.ClickException(f"Could not load config from {config_file}")

    candidate = ComprehensiveConfig()
    for section in CONFIG_SECTIONS:
        if isinstance(config_data.get(section), dict):
            apply_config_section(getattr(candidate, section), config_data[section], section)

    errors = validate_config_values(candidate)
    if errors:
        for error in errors:
            console.print(f"  • {error}", style="red")
        raise click.ClickException("Configuration validation failed")

    console.print(f"✅ Configuration file {config_file} is valid", style="green")


if __name__ == "__main__":
    cli()
