"""
Reporting and output formatting for classification results.

Provides console output using the Rich library and a JSON report for
downstream module descriptor writers.
"""

from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from .dependency import Dependency
from .module import ModuleRule
from .slot_strategy import SlotStrategy


def build_json_report(
    aggregation: Dict[ModuleRule, List[Dependency]],
    slot_strategy: SlotStrategy,
    source_file: Optional[str] = None,
) -> Dict[str, Any]:
    """Build a JSON-serializable report of the module aggregation."""
    modules = []
    for module, dependencies in aggregation.items():
        first = dependencies[0] if dependencies else None
        modules.append(
            {
                "name": module.name,
                "slot": slot_strategy.calc_slot(module, first),
                "base_path": module.base_path,
                "properties": dict(module.properties),
                "dependencies": [
                    {
                        "name": extra.name,
                        "slot": extra.slot,
                        "export": extra.export,
                        "optional": extra.optional,
                    }
                    for extra in module.dependencies
                ],
                "artifacts": [dependency.coordinates for dependency in dependencies],
            }
        )

    report: Dict[str, Any] = {
        "total_modules": len(modules),
        "total_dependencies": sum(len(deps) for deps in aggregation.values()),
        "modules": modules,
    }
    if source_file:
        report["source_file"] = source_file
    return report


class ModuleReporter:
    """Formats and displays classification results."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_module_map(
        self,
        aggregation: Dict[ModuleRule, List[Dependency]],
        slot_strategy: SlotStrategy,
        file_path: str,
        verbose: bool = False,
    ) -> None:
        """
        Print the module aggregation.

        Args:
            aggregation: Result of ``ModuleMap.aggregate()``
            slot_strategy: Strategy used to show the effective slot
            file_path: Path of the classified dependency file
            verbose: Also print every module's artifacts as a tree
        """
        self.console.print()
        self.console.print(
            Panel(
                f"📦 Module map: {file_path}",
                title="[bold blue]dep-module-mapper[/bold blue]",
                border_style="blue",
            )
        )

        if not aggregation:
            self.console.print("ℹ️  No dependencies were classified.", style="yellow")
            return

        self._print_summary(aggregation, slot_strategy)
        if verbose:
            self._print_artifacts(aggregation)

        total = sum(len(deps) for deps in aggregation.values())
        self.console.print(
            f"✅ {total} dependencies grouped into {len(aggregation)} modules",
            style="green",
        )

    def _print_summary(
        self, aggregation: Dict[ModuleRule, List[Dependency]], slot_strategy: SlotStrategy
    ) -> None:
        table = Table(title="📊 Modules", box=box.ROUNDED, title_style="bold cyan")
        table.add_column("Module", style="bold")
        table.add_column("Slot", justify="center")
        table.add_column("Artifacts", justify="right")
        table.add_column("Extra dependencies")

        for module, dependencies in aggregation.items():
            first = dependencies[0] if dependencies else None
            table.add_row(
                module.name,
                slot_strategy.calc_slot(module, first),
                str(len(dependencies)),
                ", ".join(extra.name for extra in module.dependencies)
                if module.has_dependencies
                else "-",
            )

        self.console.print(table)
        self.console.print()

    def _print_artifacts(self, aggregation: Dict[ModuleRule, List[Dependency]]) -> None:
        root = Tree("[bold]Artifacts by module[/bold]")
        for module, dependencies in aggregation.items():
            branch = root.add(f"[cyan]{module.name}[/cyan]")
            for dependency in dependencies:
                branch.add(dependency.coordinates, style="dim")
        self.console.print(root)
        self.console.print()
