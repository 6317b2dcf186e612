"""
Arcade Physics Tests — shot resolution, bounce budget, preview path.

Straight shots use angle 0 (+z) so vx stays exactly 0 and distances can be
summed by hand: each step moves vz, then vz *= 0.95, until |vz| <= 0.5.
"""

import dataclasses
import logging
import math
import sys
import os

import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from physics import (
    PhysicsMode, PhysicsParams, DEFAULT_PARAMS, VELOCITY_DECAY, STOP_VELOCITY,
    launch_velocity, resolve_shot, preview_path, resolve_shot_realistic,
    simulate_shot, count_bounces,
)
from table import (
    BOUNDARY_X_MIN, BOUNDARY_X_MAX, BOUNDARY_Z_MIN, BOUNDARY_Z_MAX,
    PLAYER1_START_Z, is_within_bounds,
)


# ── Helpers ──────────────────────────────────────────────

ORIGIN = [0.0, 0.4, 0.0]
P1_ROW = [0.0, 0.4, PLAYER1_START_Z]


def shoot(start, angle, power, params=None):
    """resolve_shot with an event trace."""
    events = []
    final = resolve_shot(start, angle, power, params, events=events)
    return final, events


def rest_event(events):
    return next(ev for ev in events if ev["type"] == "rest")


# ── Parameters ───────────────────────────────────────────

class TestPhysicsParams:

    def test_defaults(self):
        p = PhysicsParams()
        assert (p.bounce_coefficient, p.force_multiplier,
                p.movement_multiplier, p.max_bounces) == (0.7, 0.15, 0.5, 5)
        assert p.mode == PhysicsMode.ARCADE
        assert p.preview_points == 50

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            DEFAULT_PARAMS.max_bounces = 10

    @pytest.mark.parametrize("kwargs", [
        {"bounce_coefficient": -0.1},
        {"bounce_coefficient": 1.5},
        {"max_bounces": 0},
        {"realistic_friction": 0.0},
        {"realistic_bounce_coefficient": 2.0},
        {"realistic_max_iterations": 0},
        {"realistic_delta_time": 0.0},
        {"realistic_min_velocity": -1.0},
        {"preview_points": -1},
    ])
    def test_out_of_range_rejected(self, kwargs):
        with pytest.raises(ValueError):
            PhysicsParams(**kwargs)

    def test_mode_accepts_string_value(self):
        assert PhysicsParams(mode="realistic").mode == PhysicsMode.REALISTIC

    def test_launch_velocity_axes(self):
        vx, vz = launch_velocity(0.0, 100.0)
        assert vx == 0.0
        assert vz == pytest.approx(7.5)
        vx, vz = launch_velocity(90.0, 100.0)
        assert vx == pytest.approx(7.5)
        assert vz == pytest.approx(0.0, abs=1e-12)


# ── resolve_shot ─────────────────────────────────────────

class TestResolveShot:

    def test_zero_power_returns_start(self):
        final, events = shoot([10.0, 0.4, -20.0], 33.0, 0.0)
        np.testing.assert_array_equal(final, [10.0, 0.4, -20.0])
        assert rest_event(events)["steps"] == 0

    def test_zero_power_clamps_out_of_bounds_start(self):
        final = resolve_shot([500.0, 0.4, -999.0], 0.0, 0.0)
        np.testing.assert_array_equal(final, [BOUNDARY_X_MAX, 0.4, BOUNDARY_Z_MIN])

    def test_straight_shot_matches_hand_sum(self):
        """From the origin the ball glides ~140 units up the table, no bounce."""
        final, events = shoot(ORIGIN, 0.0, 100.0)

        expected_z, v, steps = 0.0, 7.5, 0
        while abs(v) > STOP_VELOCITY:
            expected_z += v
            v *= VELOCITY_DECAY
            steps += 1

        assert final[0] == 0.0
        assert final[2] == pytest.approx(expected_z)
        assert 130.0 < final[2] < 150.0, f"z={final[2]:.3f}"
        assert count_bounces(events) == 0
        assert rest_event(events)["steps"] == steps == 53

    def test_y_carried_through(self):
        final = resolve_shot([0.0, 7.25, 0.0], 30.0, 80.0)
        assert final[1] == 7.25

    def test_far_wall_bounce_from_player1_row(self):
        """Full power from z=150 overshoots the far wall once and settles just short of it."""
        final, events = shoot(P1_ROW, 0.0, 100.0)
        bounces = [ev for ev in events if ev["type"] == "bounce"]

        assert len(bounces) == 1
        assert bounces[0]["axis"] == "z"
        assert bounces[0]["wall"] == "max"
        assert bounces[0]["velocity"] < 0, "z velocity must reverse on the far wall"
        assert BOUNDARY_Z_MIN <= final[2] <= BOUNDARY_Z_MAX
        assert 270.0 < final[2] < BOUNDARY_Z_MAX, f"z={final[2]:.3f}"
        assert rest_event(events)["bounces"] == 1

    def test_single_bounce_budget_stops_on_the_wall(self):
        final, events = shoot(P1_ROW, 0.0, 100.0, PhysicsParams(max_bounces=1))
        assert final[2] == BOUNDARY_Z_MAX
        assert count_bounces(events) == 1

    def test_dead_cushion_stops_on_the_wall(self):
        final, _ = shoot(P1_ROW, 0.0, 100.0, PhysicsParams(bounce_coefficient=0.0))
        assert final[2] == BOUNDARY_Z_MAX

    def test_bounce_budget_terminates(self):
        """One step can register an x and a z bounce, so the count may overshoot by one."""
        params = PhysicsParams()
        final, events = shoot(ORIGIN, 45.0, 5000.0, params)
        n = count_bounces(events)
        assert params.max_bounces <= n <= params.max_bounces + 1, f"bounces={n}"
        assert is_within_bounds(final)

    def test_bounce_speeds_non_increasing_per_axis(self):
        _, events = shoot(ORIGIN, 45.0, 5000.0, PhysicsParams(max_bounces=10))
        for axis in ("x", "z"):
            speeds = [abs(ev["velocity"]) for ev in events
                      if ev["type"] == "bounce" and ev["axis"] == axis]
            assert speeds == sorted(speeds, reverse=True), f"{axis}: {speeds}"

    @pytest.mark.parametrize("angle", [0, 37, 90, 135, 180, 225, 270, 315, 719, -45])
    @pytest.mark.parametrize("power", [10, 100, 400, 3000])
    def test_always_within_bounds(self, angle, power):
        final = resolve_shot([50.0, 0.4, -100.0], angle, power)
        assert BOUNDARY_X_MIN <= final[0] <= BOUNDARY_X_MAX
        assert BOUNDARY_Z_MIN <= final[2] <= BOUNDARY_Z_MAX

    def test_negative_power_shoots_backwards(self):
        final = resolve_shot(ORIGIN, 0.0, -100.0)
        assert final[2] < 0.0

    def test_deterministic(self):
        a = resolve_shot(P1_ROW, 123.4, 77.0)
        b = resolve_shot(P1_ROW, 123.4, 77.0)
        np.testing.assert_array_equal(a, b)

    def test_start_not_mutated(self):
        start = np.array(P1_ROW)
        resolve_shot(start, 0.0, 100.0)
        np.testing.assert_array_equal(start, P1_ROW)

    def test_nan_position_propagates(self):
        final = resolve_shot([math.nan, 0.4, 0.0], 0.0, 50.0)
        assert np.isnan(final[0])

    def test_nan_angle_returns_start(self):
        final, events = shoot(ORIGIN, math.nan, 100.0)
        np.testing.assert_array_equal(final, ORIGIN)
        assert rest_event(events)["steps"] == 0

    def test_nan_power_returns_start(self):
        final, events = shoot(ORIGIN, 0.0, math.nan)
        np.testing.assert_array_equal(final, ORIGIN)
        assert rest_event(events)["steps"] == 0

    def test_logger_does_not_change_result(self, caplog):
        logger = logging.getLogger("test.physics")
        caplog.set_level(logging.DEBUG, logger="test.physics")
        with_log = resolve_shot(P1_ROW, 0.0, 100.0, logger=logger)
        without = resolve_shot(P1_ROW, 0.0, 100.0)
        np.testing.assert_array_equal(with_log, without)
        assert "bounce" in caplog.text
        assert "rest" in caplog.text


# ── preview_path ─────────────────────────────────────────

class TestPreviewPath:

    def test_length_and_first_point(self):
        start = [12.0, 0.4, -30.0]
        path = preview_path(start, 20.0, 60.0, point_count=10)
        assert path.shape == (11, 3)
        np.testing.assert_array_equal(path[0], start)

    def test_default_point_count(self):
        assert preview_path(ORIGIN, 0.0, 100.0).shape == (51, 3)

    def test_params_point_count(self):
        path = preview_path(ORIGIN, 0.0, 100.0, PhysicsParams(preview_points=8))
        assert path.shape == (9, 3)

    def test_zero_points(self):
        path = preview_path(ORIGIN, 0.0, 100.0, point_count=0)
        assert path.shape == (1, 3)

    def test_negative_point_count_rejected(self):
        with pytest.raises(ValueError):
            preview_path(ORIGIN, 0.0, 100.0, point_count=-1)

    def test_first_point_is_unclamped_start(self):
        path = preview_path([999.0, 0.4, 0.0], 0.0, 10.0, point_count=5)
        assert path[0][0] == 999.0
        assert path[1][0] == BOUNDARY_X_MAX

    def test_pure(self):
        a = preview_path(P1_ROW, 15.0, 90.0)
        b = preview_path(P1_ROW, 15.0, 90.0)
        np.testing.assert_array_equal(a, b)

    def test_sub_steps_match_hand_sum(self):
        path = preview_path(ORIGIN, 0.0, 100.0, point_count=50)
        expected = sum(7.5 / 50 * VELOCITY_DECAY ** k for k in range(50))
        assert path[-1][2] == pytest.approx(expected)
        assert np.all(path[:, 1] == 0.4)

    def test_independent_of_resolve_shot(self):
        """Different step size and no early stop: endpoints generally disagree."""
        path = preview_path(ORIGIN, 0.0, 100.0)
        final = resolve_shot(ORIGIN, 0.0, 100.0)
        assert path[-1][2] < final[2]

    def test_no_bounce_cap(self):
        """Walls keep reflecting past max_bounces and every point stays in bounds."""
        params = PhysicsParams(max_bounces=1, bounce_coefficient=1.0)
        path = preview_path(ORIGIN, 45.0, 50000.0, params, point_count=40)
        assert path.shape == (41, 3)
        for p in path[1:]:
            assert is_within_bounds(p)
        hits = sum(1 for p in path[1:] if abs(p[0]) == BOUNDARY_X_MAX or abs(p[2]) == BOUNDARY_Z_MAX)
        assert hits > params.max_bounces, f"wall hits={hits}"


# ── Realistic variant ────────────────────────────────────

class TestRealistic:

    def test_runs_iteration_budget_and_stays_in_bounds(self):
        params = PhysicsParams(mode=PhysicsMode.REALISTIC)
        events = []
        final = resolve_shot_realistic(P1_ROW, 0.0, 100.0, params, events=events)
        assert is_within_bounds(final)
        assert rest_event(events)["steps"] == params.realistic_max_iterations
        assert count_bounces(events) >= 1

    def test_min_velocity_stops_immediately(self):
        params = PhysicsParams(mode="realistic", realistic_min_velocity=1e9)
        events = []
        final = resolve_shot_realistic(P1_ROW, 0.0, 100.0, params, events=events)
        np.testing.assert_array_equal(final, P1_ROW)
        assert rest_event(events)["steps"] == 0

    def test_zero_power(self):
        final = resolve_shot_realistic(P1_ROW, 0.0, 0.0)
        np.testing.assert_array_equal(final, P1_ROW)


class TestSimulateShotDispatch:

    def test_arcade(self):
        np.testing.assert_array_equal(
            simulate_shot(P1_ROW, 10.0, 90.0),
            resolve_shot(P1_ROW, 10.0, 90.0))

    def test_realistic(self):
        params = PhysicsParams(mode=PhysicsMode.REALISTIC)
        np.testing.assert_array_equal(
            simulate_shot(P1_ROW, 10.0, 90.0, params),
            resolve_shot_realistic(P1_ROW, 10.0, 90.0, params))
