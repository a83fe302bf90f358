"""Run configuration: scoring weights, builder rules and search parameters.

A run is configured by one `RunConfig` that bundles the frozen settings
objects of each stage. Two named profiles are provided:

- "standard": reference weights, steady-state replacement with tabu repair.
- "balanced": adds the workload-balance and lab-day-spread preferences and
  uses generational replacement with elitism.

`load_run_config` reads a JSON file that names a profile and overrides
individual fields, e.g.::

    {
      "profile": "standard",
      "scoring": {"hard_weight": 200},
      "genetic": {"population_size": 80, "seed": 7},
      "tabu": {"max_iterations": 30}
    }
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Optional

from optimizer import GeneticConfig, TabuConfig

from .fitness import ClassSchedulingSettings
from .session_builder import BuilderSettings


@dataclass(frozen=True)
class RunConfig:
    scoring: ClassSchedulingSettings = field(default_factory=ClassSchedulingSettings)
    builder: BuilderSettings = field(default_factory=BuilderSettings)
    genetic: GeneticConfig = field(default_factory=GeneticConfig)
    tabu: TabuConfig = field(default_factory=TabuConfig)
    profile: str = "standard"


PROFILES: Dict[str, RunConfig] = {
    "standard": RunConfig(),
    "balanced": RunConfig(
        scoring=ClassSchedulingSettings(
            prefer_workload_balance=0.05,
            prefer_lab_day_spread=2.0,
        ),
        genetic=GeneticConfig(
            replacement="generational",
            elite_count=2,
            generations=150,
        ),
        profile="balanced",
    ),
}


_SECTIONS = {
    "scoring": ClassSchedulingSettings,
    "builder": BuilderSettings,
    "genetic": GeneticConfig,
    "tabu": TabuConfig,
}


def profile(name: str = "standard") -> RunConfig:
    try:
        return PROFILES[name]
    except KeyError:
        raise ValueError(f"Unknown profile '{name}'. Available: {', '.join(sorted(PROFILES))}") from None


def _override(obj: Any, values: Mapping[str, Any], section: str) -> Any:
    known = {f.name for f in fields(obj)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"Unknown {section} setting(s): {', '.join(unknown)}")
    cleaned: Dict[str, Any] = {}
    for k, v in values.items():
        # JSON has no tuples
        cleaned[k] = tuple(v) if isinstance(v, list) else v
    return replace(obj, **cleaned)


def run_config_from_dict(data: Mapping[str, Any]) -> RunConfig:
    base = profile(str(data.get("profile", "standard")))

    unknown = sorted(set(data) - set(_SECTIONS) - {"profile"})
    if unknown:
        raise ValueError(f"Unknown config section(s): {', '.join(unknown)}")

    updates: Dict[str, Any] = {}
    for section in _SECTIONS:
        values = data.get(section)
        if values is None:
            continue
        if not isinstance(values, Mapping):
            raise ValueError(f"Config section '{section}' must be an object, got {type(values).__name__}")
        if values:
            updates[section] = _override(getattr(base, section), values, section)

    config = replace(base, **updates)
    config.genetic.validate()
    return config


def run_config_to_dict(config: RunConfig) -> Dict[str, Any]:
    out: Dict[str, Any] = {"profile": config.profile}
    for section in _SECTIONS:
        out[section] = asdict(getattr(config, section))
    return out


def load_run_config(path: Optional[str]) -> RunConfig:
    """Load a run configuration from JSON; `None` returns the standard profile."""

    if path is None:
        return profile("standard")
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("Run configuration must be a JSON object")
    return run_config_from_dict(data)
