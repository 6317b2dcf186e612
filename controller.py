"""
GameController — Round Orchestrator

Owns the table snapshot, turn order, cumulative scores and game lifecycle.
Calls into the pure core (physics.simulate_shot, scoring.score_round) and
reports what happened through ``pending_events``, a queue of dicts the caller
drains (server.py forwards them to clients):

  game_state_changed, turn_changed, score_updated, round_completed,
  game_finished

One controller per game; it is not shared between threads.
"""

import json
import logging
from typing import Optional

import numpy as np

from physics import DEFAULT_PARAMS, PhysicsParams, preview_path, simulate_shot, count_bounces
from scoring import ScoreResult, score_round
from table import Owner, TableSnapshot, TARGET_SCORE_STANDARD

log = logging.getLogger(__name__)

STATE_SETUP = "setup"
STATE_PLAYING = "playing"
STATE_FINISHED = "finished"


class GameError(Exception):
    """A shot or command that breaks the game rules."""


class GameController:
    """Turn sequencing + round/game lifecycle around the pure core."""

    def __init__(self, params: Optional[PhysicsParams] = None,
                 logger: Optional[logging.Logger] = None):
        self.params = params or DEFAULT_PARAMS
        self.log = logger or log

        self.snapshot = TableSnapshot.initial()
        self.player1_name = "Player 1"
        self.player2_name = "Player 2"
        self.player1_score = 0
        self.player2_score = 0
        self.target_score = TARGET_SCORE_STANDARD
        self.current_turn = Owner.PLAYER_1
        self.status = STATE_SETUP
        self.round_number = 1
        self.winner: Optional[str] = None
        self.last_round: Optional[ScoreResult] = None

        self.pending_events: list[dict] = []

    # ──────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────────────────────────────────

    def start_new_game(self, player1_name: str = "Player 1", player2_name: str = "Player 2",
                       target_score: int = TARGET_SCORE_STANDARD) -> None:
        if target_score < 1:
            raise GameError(f"target_score must be >= 1, got {target_score}")
        self.snapshot = TableSnapshot.initial()
        self.player1_name = player1_name
        self.player2_name = player2_name
        self.player1_score = 0
        self.player2_score = 0
        self.target_score = target_score
        self.current_turn = Owner.PLAYER_1
        self.status = STATE_PLAYING
        self.round_number = 1
        self.winner = None
        self.last_round = None
        self.log.info("New game started: %s vs %s, target: %d",
                      player1_name, player2_name, target_score)
        self._state_changed()

    def reset_game(self) -> None:
        """Restart the current game from round 1 with the same players."""
        if self.status == STATE_SETUP:
            return
        self.round_number = 1
        self.player1_score = 0
        self.player2_score = 0
        self.current_turn = Owner.PLAYER_1
        self.status = STATE_PLAYING
        self.winner = None
        self.last_round = None
        self.snapshot.reset_for_new_round()
        self._state_changed()

    def load_snapshot(self, snapshot: TableSnapshot) -> None:
        """Replace the table (preset layouts). Scores and turn are kept."""
        self.snapshot = snapshot
        self._state_changed()

    def end_game(self) -> None:
        if self.status == STATE_SETUP:
            return
        self.status = STATE_FINISHED
        self._state_changed()

    # ──────────────────────────────────────────────────────────────────────────
    # Shooting
    # ──────────────────────────────────────────────────────────────────────────

    def _shootable_ball(self, ball_id: str):
        ball = self.snapshot.find(ball_id)
        if ball is None:
            raise GameError(f"unknown ball '{ball_id}'")
        if ball.owner != self.current_turn:
            raise GameError(f"ball '{ball_id}' does not belong to player {int(self.current_turn)}")
        if ball.active:
            raise GameError(f"ball '{ball_id}' was already shot this round")
        return ball

    def next_ball(self, owner: Optional[Owner] = None) -> Optional[str]:
        """Id of the first not-yet-shot ball of ``owner`` (default: player to move)."""
        owner = self.current_turn if owner is None else Owner(owner)
        ball = next((b for b in self.snapshot.balls_for(owner) if not b.active), None)
        return ball.ball_id if ball is not None else None

    def shoot_ball(self, ball_id: str, angle: float, power: float) -> Optional[dict]:
        """Resolve and commit one shot. Returns None when no game is being played."""
        if self.status != STATE_PLAYING:
            self.log.warning("Cannot shoot ball - game not in playing state")
            return None
        ball = self._shootable_ball(ball_id)

        events: list[dict] = []
        final = simulate_shot(ball.position, angle, power, self.params, events=events)
        ball.position = final
        ball.active = True
        self.log.debug("Ball %s shot to position %s", ball.ball_id, final.tolist())

        result = {
            "ball_id": ball.ball_id,
            "position": [round(float(v), 5) for v in final],
            "bounces": count_bounces(events),
            "round_completed": False,
        }

        if self.snapshot.all_balls_played():
            self._complete_round()
            result["round_completed"] = True
        else:
            self._switch_turn()

        self._state_changed()
        return result

    def _switch_turn(self) -> None:
        other = Owner.PLAYER_2 if self.current_turn == Owner.PLAYER_1 else Owner.PLAYER_1
        # A player with no balls left passes the turn back
        if self.next_ball(other) is not None:
            self.current_turn = other
        self.pending_events.append({"type": "turn_changed", "turn": int(self.current_turn)})

    def _complete_round(self) -> None:
        scores = score_round(self.snapshot)
        self.last_round = scores
        self.player1_score += scores.player1
        self.player2_score += scores.player2

        self.log.info("Round %d complete. Scores: P1=%d, P2=%d",
                      self.round_number, scores.player1, scores.player2)
        self.log.info("Total scores: P1=%d, P2=%d", self.player1_score, self.player2_score)

        self.pending_events.append({"type": "score_updated",
                                    "player1": self.player1_score,
                                    "player2": self.player2_score})
        self.pending_events.append({"type": "round_completed",
                                    "round": self.round_number,
                                    "round_score": list(scores)})

        if self.is_game_over():
            self._determine_winner()
            self.pending_events.append({"type": "game_finished", "winner": self.winner})
            self.log.info("Game finished! Winner: %s", self.winner)
        else:
            self.round_number += 1
            self.snapshot.reset_for_new_round()
            self.current_turn = Owner.PLAYER_1

    def is_game_over(self) -> bool:
        return self.player1_score >= self.target_score or self.player2_score >= self.target_score

    def _determine_winner(self) -> None:
        if self.player1_score >= self.target_score:
            self.winner = self.player1_name
        elif self.player2_score >= self.target_score:
            self.winner = self.player2_name
        self.status = STATE_FINISHED

    def _state_changed(self) -> None:
        self.pending_events.append({"type": "game_state_changed", "status": self.status})

    # ──────────────────────────────────────────────────────────────────────────
    # Headless helpers
    # ──────────────────────────────────────────────────────────────────────────

    def preview(self, ball_id: str, angle: float, power: float,
                point_count: Optional[int] = None) -> np.ndarray:
        ball = self.snapshot.find(ball_id)
        if ball is None:
            raise GameError(f"unknown ball '{ball_id}'")
        return preview_path(ball.position, angle, power, self.params, point_count)

    def simulate_shot(self, ball_id: str, angle: float, power: float) -> dict:
        """What-if shot. Non-destructive: works on a copy of the snapshot.

        Returns ``position``, ``bounces`` and ``score`` (the round score the
        table would have with this ball placed and marked active).
        """
        sim = self.snapshot.copy()
        ball = sim.find(ball_id)
        if ball is None:
            raise GameError(f"unknown ball '{ball_id}'")
        events: list[dict] = []
        ball.position = simulate_shot(ball.position, angle, power, self.params, events=events)
        ball.active = True
        return {
            "ball_id": ball_id,
            "position": [round(float(v), 5) for v in ball.position],
            "bounces": count_bounces(events),
            "score": list(score_round(sim)),
        }

    # ──────────────────────────────────────────────────────────────────────────
    # Serialisation
    # ──────────────────────────────────────────────────────────────────────────

    def get_state(self) -> dict:
        return {
            "status": self.status,
            "round": self.round_number,
            "turn": int(self.current_turn),
            "next_ball": self.next_ball() if self.status == STATE_PLAYING else None,
            "players": [self.player1_name, self.player2_name],
            "scores": [self.player1_score, self.player2_score],
            "target_score": self.target_score,
            "winner": self.winner,
            "last_round": list(self.last_round) if self.last_round is not None else None,
            "table": self.snapshot.to_dict(),
        }

    def get_state_json(self) -> str:
        return json.dumps(self.get_state(), separators=(',', ':'))

    def drain_events(self) -> list[dict]:
        events = self.pending_events
        self.pending_events = []
        return events
