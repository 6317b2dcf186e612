"""
Physics configuration files.

A config is a flat JSON object keyed by ``PhysicsParams`` field names::

    {"mode": "arcade", "bounce_coefficient": 0.7, "max_bounces": 5}

Missing keys keep their defaults. Params are loaded once and passed by value;
nothing here mutates a live ``PhysicsParams``.
"""

import dataclasses
import json
import os
from pathlib import Path

from physics import PhysicsMode, PhysicsParams

CONFIG_ENV_VAR = "CENTERBALL_PHYSICS_CONFIG"

_INT_FIELDS = {"max_bounces", "realistic_max_iterations", "preview_points"}
_FIELDS = {f.name for f in dataclasses.fields(PhysicsParams)}


class ConfigError(ValueError):
    """Unreadable or invalid physics configuration."""


def _as_int(value) -> int:
    if isinstance(value, bool):
        raise ValueError(f"expected an integer, got {value}")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"expected an integer, got {value}")
    return int(value)


def params_from_dict(data: dict) -> PhysicsParams:
    if not isinstance(data, dict):
        raise ConfigError(f"physics config must be a JSON object, got {type(data).__name__}")

    data = dict(data)
    # Ball-ball collision is not simulated; only an explicit opt-out is accepted.
    collisions = data.pop("realistic_enable_ball_collisions", False)
    if not isinstance(collisions, bool):
        raise ConfigError("realistic_enable_ball_collisions must be true or false")
    if collisions:
        raise ConfigError("realistic_enable_ball_collisions is not supported")

    unknown = sorted(set(data) - _FIELDS)
    if unknown:
        raise ConfigError(f"unknown physics config keys: {unknown}")

    kwargs = {}
    for key, value in data.items():
        try:
            if key == "mode":
                kwargs[key] = PhysicsMode(str(value).lower())
            elif key in _INT_FIELDS:
                kwargs[key] = _as_int(value)
            else:
                kwargs[key] = float(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"{key}: {exc}") from exc

    try:
        return PhysicsParams(**kwargs)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc


def params_to_dict(params: PhysicsParams) -> dict:
    data = dataclasses.asdict(params)
    data["mode"] = params.mode.value
    return data


def load_params(path) -> PhysicsParams:
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path}: JSON parse error: {exc}") from exc
    return params_from_dict(data)


def save_params(params: PhysicsParams, path) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(params_to_dict(params), f, indent=2)


def params_from_env(environ=None) -> PhysicsParams:
    """Params from the file named by $CENTERBALL_PHYSICS_CONFIG, else defaults."""
    environ = os.environ if environ is None else environ
    path = environ.get(CONFIG_ENV_VAR)
    if not path:
        return PhysicsParams()
    return load_params(path)
