"""External Lineup Adapter package.

- base: LineupAdapter ABC with verified mutations, LineupEntry, RankedScore
- sandbox: in-process SandboxLineup for dry runs and tests
- results: ScoreboardResultsClient for the public ranked-results feed
"""

from __future__ import annotations

import functools
import importlib
from typing import Callable

from pingrind.exceptions import ConfigError

from .base import LineupAdapter, LineupEntry, RankedScore
from .results import ScoreboardResultsClient
from .sandbox import SandboxLineup

LineupFactory = Callable[[], LineupAdapter]


def load_lineup_factory(target: str, settings) -> LineupFactory:
    """Resolve ``"package.module:ClassName"`` into a session factory."""
    module_name, sep, class_name = target.partition(":")
    if not sep or not module_name or not class_name:
        raise ConfigError(f"LINEUP_ADAPTER must look like 'module:Class', got {target!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import lineup adapter module {module_name!r}: {e}") from e
    cls = getattr(module, class_name, None)
    if not isinstance(cls, type) or not issubclass(cls, LineupAdapter):
        raise ConfigError(f"{target!r} is not a LineupAdapter subclass")
    return functools.partial(cls.from_settings, settings)


__all__ = [
    "LineupAdapter",
    "LineupEntry",
    "LineupFactory",
    "RankedScore",
    "SandboxLineup",
    "ScoreboardResultsClient",
    "load_lineup_factory",
]
