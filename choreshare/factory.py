"""Allocation strategy creation for choreshare."""

import random
from dataclasses import fields, replace
from typing import Any

from choreshare.allocation import AllocationStrategy
from choreshare.heuristic import HeuristicAllocator, HeuristicParams
from choreshare.optimizer import ExactAllocator, ExactParams

STRATEGY_NAMES = ("heuristic", "exact")


def _coerce(name: str, default: Any, value: Any) -> Any:
    """Convert value to the type of a setting's default value."""
    # Only the seed defaults to None, and it takes an int
    if default is None:
        if value is None:
            return None
        kind = int
    else:
        kind = type(default)

    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"{name} must be {kind.__name__}, got {value!r}")
    try:
        converted = kind(value)
    except ValueError:
        raise ValueError(f"{name} must be {kind.__name__}, got {value!r}") from None
    if kind is int and isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{name} must be int, got {value!r}")
    return converted


def apply_overrides(params: Any, overrides: dict[str, Any] | None) -> Any:
    """
    Return a copy of a params dataclass with overrides applied.

    Unknown keys and values that cannot be converted to the setting's type
    raise ValueError.
    """
    if not overrides:
        return params
    defaults = {f.name: getattr(params, f.name) for f in fields(params)}
    unknown = sorted(set(overrides) - set(defaults))
    if unknown:
        raise ValueError(f"Unknown {type(params).__name__} setting(s): {', '.join(unknown)}")
    converted = {
        name: _coerce(name, defaults[name], value) for name, value in overrides.items()
    }
    return replace(params, **converted)


def create_strategy(
    name: str,
    overrides: dict[str, Any] | None = None,
    rng: random.Random | None = None,
) -> AllocationStrategy:
    """Create the allocation strategy called name ("heuristic"/"greedy" or "exact"/"milp")."""
    key = (name or "").lower().strip()

    if key in ("heuristic", "greedy"):
        params = apply_overrides(HeuristicParams(), overrides)
        return HeuristicAllocator(params=params, rng=rng)

    if key in ("exact", "milp"):
        params = apply_overrides(ExactParams(), overrides)
        return ExactAllocator(params=params)

    raise ValueError(f"Unknown allocation strategy: {name!r}")
