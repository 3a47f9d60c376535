"""Default slot selection for modules that do not declare one."""

import re
from enum import Enum
from typing import Optional

from .dependency import Dependency
from .module import ModuleRule

_MAJOR_VERSION = re.compile(r"^\s*(\d+)")


class SlotStrategyType(Enum):
    """Ways to pick a slot for a module without an explicit one."""

    MAIN = "main"
    VERSION_MAJOR = "version-major"


class SlotStrategy:
    """Computes the slot a module is written to."""

    def __init__(self, strategy: SlotStrategyType, default_slot: str = "main"):
        self.strategy = strategy
        self.default_slot = default_slot

    @classmethod
    def from_string(cls, value: Optional[str]) -> "SlotStrategy":
        """
        Create a strategy from its configuration value.

        ``version-major`` (or ``version_major``) selects the major version of
        the module's dependency; any other value names the fixed default slot.
        """
        normalized = "" if value is None else str(value).strip()
        if normalized.lower().replace("_", "-") == SlotStrategyType.VERSION_MAJOR.value:
            return cls(SlotStrategyType.VERSION_MAJOR)
        return cls(SlotStrategyType.MAIN, normalized or "main")

    def calc_slot(self, module: ModuleRule, dependency: Optional[Dependency] = None) -> str:
        if module.slot:
            return module.slot
        if self.strategy == SlotStrategyType.VERSION_MAJOR and dependency is not None:
            match = _MAJOR_VERSION.match(dependency.version or "")
            if match:
                return match.group(1)
        return self.default_slot

    def __repr__(self) -> str:
        return f"SlotStrategy({self.strategy.value!r}, default_slot={self.default_slot!r})"
