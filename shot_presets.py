"""
Shot Preset System
Named table layouts and shots: scoring situations and bounce behaviour that
can be loaded into a game (server.py) or checked headless (tests).
"""

import numpy as np

from physics import PhysicsMode, PhysicsParams, simulate_shot
from scoring import score_round
from table import BALL_Y_POSITION, TableSnapshot


def _place(snapshot: TableSnapshot, ball_id: str, x: float, z: float) -> None:
    """Put a ball at (x, z) and mark it played."""
    ball = snapshot.find(ball_id)
    ball.position = np.array([x, BALL_Y_POSITION, z])
    ball.active = True


def _run_shots(result: dict) -> dict:
    snapshot, params = result["snapshot"], result["params"]
    events: list = []
    for ball_id, angle, power in result["shots"]:
        ball = snapshot.find(ball_id)
        ball.position = simulate_shot(ball.position, angle, power, params, events=events)
        ball.active = True
    result["events"] = events
    result["score"] = score_round(snapshot)
    return result


class ShotPreset:
    """Each preset: layout (+ optional shots) → dict; ``run=True`` also shoots and scores."""

    @staticmethod
    def scenario_1_ring_layout(run=True) -> dict:
        """Player 1 in the ring off the center ball, player 2 touching it: 2 vs 3."""
        snapshot = TableSnapshot.initial()
        _place(snapshot, "p1_ball_0", 1.0, 0.0)
        _place(snapshot, "p2_ball_0", 0.3, 0.0)
        result = {"snapshot": snapshot, "params": PhysicsParams(), "shots": [],
                  "events": [], "score": None}
        return _run_shots(result) if run else result

    @staticmethod
    def scenario_2_tie_break(run=True) -> dict:
        """Two balls outside the ring at equal distance: player 1 takes the point."""
        snapshot = TableSnapshot.initial()
        _place(snapshot, "p1_ball_0", 5.0, 0.0)
        _place(snapshot, "p2_ball_0", -5.0, 0.0)
        result = {"snapshot": snapshot, "params": PhysicsParams(), "shots": [],
                  "events": [], "score": None}
        return _run_shots(result) if run else result

    @staticmethod
    def scenario_3_far_wall_bounce(run=True) -> dict:
        """Full power straight up the table from player 1's row: one far-wall bounce."""
        snapshot = TableSnapshot.initial()
        result = {"snapshot": snapshot, "params": PhysicsParams(),
                  "shots": [("p1_ball_2", 0.0, 100.0)], "events": [], "score": None}
        return _run_shots(result) if run else result

    @staticmethod
    def scenario_4_corner_bank(run=True) -> dict:
        """Huge diagonal shot from the center: stops on the bounce budget."""
        snapshot = TableSnapshot.initial()
        snapshot.find("p1_ball_2").position = np.array([0.0, BALL_Y_POSITION, 0.0])
        result = {"snapshot": snapshot, "params": PhysicsParams(),
                  "shots": [("p1_ball_2", 45.0, 5000.0)], "events": [], "score": None}
        return _run_shots(result) if run else result

    @staticmethod
    def scenario_5_realistic_glide(run=True) -> dict:
        """Same shot as scenario 3 with the friction-based algorithm."""
        snapshot = TableSnapshot.initial()
        params = PhysicsParams(mode=PhysicsMode.REALISTIC)
        result = {"snapshot": snapshot, "params": params,
                  "shots": [("p1_ball_2", 0.0, 100.0)], "events": [], "score": None}
        return _run_shots(result) if run else result


PRESETS = {
    "ring_layout": ShotPreset.scenario_1_ring_layout,
    "tie_break": ShotPreset.scenario_2_tie_break,
    "far_wall_bounce": ShotPreset.scenario_3_far_wall_bounce,
    "corner_bank": ShotPreset.scenario_4_corner_bank,
    "realistic_glide": ShotPreset.scenario_5_realistic_glide,
}
