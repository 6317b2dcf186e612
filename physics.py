"""
CenterBall Arcade Physics
Shot resolution: per-axis wall reflection, velocity decay, bounce budget.

This is an arcade model, not a rigid-body simulation: no ball-ball
collisions, no spin. Two algorithms share the same launch velocity:

- ``resolve_shot``: authoritative rest position of a shot.
- ``preview_path``: display-only aim line, fixed sub-steps, no bounce cap.
  Its endpoint is not guaranteed to match ``resolve_shot``.
"""

import enum
import logging
import math
import numpy as np
from dataclasses import dataclass
from typing import List, Optional, Tuple

from table import (
    BOUNDARY_X_MIN, BOUNDARY_X_MAX, BOUNDARY_Z_MIN, BOUNDARY_Z_MAX,
    clamp_to_boundary,
)

# ──────────────────────────────────────────────
# Algorithm constants (not configuration)
# ──────────────────────────────────────────────
VELOCITY_DECAY: float = 0.95  # applied to both axes every iteration
STOP_VELOCITY: float = 0.5    # loop runs while either |v| exceeds this
DEFAULT_PREVIEW_POINTS: int = 50


class PhysicsMode(enum.Enum):
    ARCADE = "arcade"
    REALISTIC = "realistic"


@dataclass(frozen=True)
class PhysicsParams:
    """Immutable physics configuration, passed into every shot resolution."""
    bounce_coefficient: float = 0.7    # energy kept per wall reflection
    force_multiplier: float = 0.15     # power -> speed
    movement_multiplier: float = 0.5   # secondary speed scale
    max_bounces: int = 5               # iteration safety cap
    mode: PhysicsMode = PhysicsMode.ARCADE

    # Friction-based variant, only read when mode is REALISTIC
    realistic_friction: float = 0.98
    realistic_bounce_coefficient: float = 0.85
    realistic_force_multiplier: float = 0.20
    realistic_max_iterations: int = 300
    realistic_delta_time: float = 0.0167
    realistic_min_velocity: float = 0.01

    preview_points: int = DEFAULT_PREVIEW_POINTS

    def __post_init__(self):
        object.__setattr__(self, "mode", PhysicsMode(self.mode))
        if not 0.0 <= self.bounce_coefficient <= 1.0:
            raise ValueError(f"bounce_coefficient must be in [0, 1], got {self.bounce_coefficient}")
        if not 0.0 <= self.realistic_bounce_coefficient <= 1.0:
            raise ValueError("realistic_bounce_coefficient must be in [0, 1], "
                             f"got {self.realistic_bounce_coefficient}")
        if self.max_bounces < 1:
            raise ValueError(f"max_bounces must be >= 1, got {self.max_bounces}")
        if not 0.0 < self.realistic_friction <= 1.0:
            raise ValueError(f"realistic_friction must be in (0, 1], got {self.realistic_friction}")
        if self.realistic_max_iterations < 1:
            raise ValueError("realistic_max_iterations must be >= 1, "
                             f"got {self.realistic_max_iterations}")
        if self.realistic_delta_time <= 0.0:
            raise ValueError(f"realistic_delta_time must be > 0, got {self.realistic_delta_time}")
        if self.realistic_min_velocity < 0.0:
            raise ValueError("realistic_min_velocity must be >= 0, "
                             f"got {self.realistic_min_velocity}")
        if self.preview_points < 0:
            raise ValueError(f"preview_points must be >= 0, got {self.preview_points}")


DEFAULT_PARAMS = PhysicsParams()


# ──────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────
def launch_velocity(angle_deg: float, power: float,
                    params: PhysicsParams = DEFAULT_PARAMS) -> Tuple[float, float]:
    """Initial planar velocity (vx, vz). 0 deg points along +z, 90 deg along +x."""
    radians = math.radians(angle_deg)
    speed = power * params.force_multiplier * params.movement_multiplier
    return math.sin(radians) * speed, math.cos(radians) * speed


def _reflect_axis(nxt: float, vel: float, lo: float, hi: float,
                  bounce: float) -> Tuple[float, float, Optional[str]]:
    """Clamp one axis to [lo, hi]; reverse and damp its velocity on a hit.

    Returns (position, velocity, wall) where wall is "min", "max" or None.
    """
    if nxt < lo:
        return lo, -vel * bounce, "min"
    if nxt > hi:
        return hi, -vel * bounce, "max"
    return nxt, vel, None


def _emit(events: Optional[list], logger: Optional[logging.Logger], ev: dict) -> None:
    if events is not None:
        events.append(ev)
    if logger is not None:
        logger.debug("%s: %s", ev["type"], ev)


# ──────────────────────────────────────────────
# Authoritative shot resolution
# ──────────────────────────────────────────────
def resolve_shot(start, angle_deg: float, power: float,
                 params: Optional[PhysicsParams] = None, *,
                 events: Optional[list] = None,
                 logger: Optional[logging.Logger] = None) -> np.ndarray:
    """
    Final rest position of a shot.

    Args:
        start: Starting position (x, y, z). y is carried through unchanged.
        angle_deg: Planar direction in degrees, any real value.
        power: Shot strength (percent), any real value.
        params: Physics parameters. ``None`` uses ``DEFAULT_PARAMS``.
        events: Optional list receiving ``bounce`` dicts and one ``rest`` dict.
        logger: Optional logger receiving the same events at DEBUG level.

    Returns:
        ``np.ndarray`` [x, y, z] inside the boundary rectangle. Never raises. A
        non-finite position propagates; a NaN angle or power fails the loop
        condition, so the clamped start comes back.
    """
    params = params or DEFAULT_PARAMS
    start = np.asarray(start, dtype=float)
    vx, vz = launch_velocity(angle_deg, power, params)
    x, z = float(start[0]), float(start[2])
    bounces = 0
    steps = 0

    while bounces < params.max_bounces and (abs(vx) > STOP_VELOCITY or abs(vz) > STOP_VELOCITY):
        x, vx, wall_x = _reflect_axis(x + vx, vx, BOUNDARY_X_MIN, BOUNDARY_X_MAX,
                                      params.bounce_coefficient)
        if wall_x is not None:
            bounces += 1
            _emit(events, logger, {"type": "bounce", "axis": "x", "wall": wall_x,
                                   "velocity": vx, "bounces": bounces})

        z, vz, wall_z = _reflect_axis(z + vz, vz, BOUNDARY_Z_MIN, BOUNDARY_Z_MAX,
                                      params.bounce_coefficient)
        if wall_z is not None:
            bounces += 1
            _emit(events, logger, {"type": "bounce", "axis": "z", "wall": wall_z,
                                   "velocity": vz, "bounces": bounces})

        vx *= VELOCITY_DECAY
        vz *= VELOCITY_DECAY
        steps += 1

    final = clamp_to_boundary([x, start[1], z])
    _emit(events, logger, {"type": "rest", "position": final.tolist(),
                           "bounces": bounces, "steps": steps})
    return final


def preview_path(start, angle_deg: float, power: float,
                 params: Optional[PhysicsParams] = None,
                 point_count: Optional[int] = None) -> np.ndarray:
    """
    Display-only aim path, shape ``(point_count + 1, 3)``; row 0 is ``start``.

    The launch velocity is split into ``point_count`` equal sub-steps, each with
    the same clamp/reflect/decay as ``resolve_shot`` but without a bounce cap
    or early stop.
    """
    params = params or DEFAULT_PARAMS
    if point_count is None:
        point_count = params.preview_points
    if point_count < 0:
        raise ValueError(f"point_count must be >= 0, got {point_count}")

    start = np.asarray(start, dtype=float)
    points = np.empty((point_count + 1, 3), dtype=float)
    points[0] = start
    if point_count == 0:
        return points

    vx, vz = launch_velocity(angle_deg, power, params)
    x, z = float(start[0]), float(start[2])
    for i in range(1, point_count + 1):
        x, vx, _ = _reflect_axis(x + vx / point_count, vx, BOUNDARY_X_MIN, BOUNDARY_X_MAX,
                                 params.bounce_coefficient)
        z, vz, _ = _reflect_axis(z + vz / point_count, vz, BOUNDARY_Z_MIN, BOUNDARY_Z_MAX,
                                 params.bounce_coefficient)
        vx *= VELOCITY_DECAY
        vz *= VELOCITY_DECAY
        points[i] = (x, start[1], z)
    return points


# ──────────────────────────────────────────────
# Friction-based variant (mode == REALISTIC)
# ──────────────────────────────────────────────
def resolve_shot_realistic(start, angle_deg: float, power: float,
                           params: Optional[PhysicsParams] = None, *,
                           events: Optional[list] = None,
                           logger: Optional[logging.Logger] = None) -> np.ndarray:
    """Fixed-timestep glide with per-step friction and no bounce cap.

    Speed is in table units per second; each step moves ``v * dt``. Stops after
    ``realistic_max_iterations`` steps or once speed drops under
    ``realistic_min_velocity``.
    """
    params = params or DEFAULT_PARAMS
    start = np.asarray(start, dtype=float)
    dt = params.realistic_delta_time
    radians = math.radians(angle_deg)
    speed = power * params.realistic_force_multiplier / dt
    vx, vz = math.sin(radians) * speed, math.cos(radians) * speed
    x, z = float(start[0]), float(start[2])
    bounces = 0
    steps = 0

    for _ in range(params.realistic_max_iterations):
        if math.hypot(vx, vz) < params.realistic_min_velocity:
            break
        x, vx, wall_x = _reflect_axis(x + vx * dt, vx, BOUNDARY_X_MIN, BOUNDARY_X_MAX,
                                      params.realistic_bounce_coefficient)
        if wall_x is not None:
            bounces += 1
            _emit(events, logger, {"type": "bounce", "axis": "x", "wall": wall_x,
                                   "velocity": vx, "bounces": bounces})
        z, vz, wall_z = _reflect_axis(z + vz * dt, vz, BOUNDARY_Z_MIN, BOUNDARY_Z_MAX,
                                      params.realistic_bounce_coefficient)
        if wall_z is not None:
            bounces += 1
            _emit(events, logger, {"type": "bounce", "axis": "z", "wall": wall_z,
                                   "velocity": vz, "bounces": bounces})
        vx *= params.realistic_friction
        vz *= params.realistic_friction
        steps += 1

    final = clamp_to_boundary([x, start[1], z])
    _emit(events, logger, {"type": "rest", "position": final.tolist(),
                           "bounces": bounces, "steps": steps})
    return final


def simulate_shot(start, angle_deg: float, power: float,
                  params: Optional[PhysicsParams] = None, *,
                  events: Optional[list] = None,
                  logger: Optional[logging.Logger] = None) -> np.ndarray:
    """Resolve a shot with the algorithm selected by ``params.mode``."""
    params = params or DEFAULT_PARAMS
    if params.mode == PhysicsMode.REALISTIC:
        return resolve_shot_realistic(start, angle_deg, power, params,
                                      events=events, logger=logger)
    return resolve_shot(start, angle_deg, power, params, events=events, logger=logger)


def count_bounces(events: List[dict]) -> int:
    return sum(1 for ev in events if ev.get("type") == "bounce")
