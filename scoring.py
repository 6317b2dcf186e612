"""
CenterBall Round Scoring
Classifies active balls by distance to the center ball and the center ring.

Rules (each ball earns at most one):
  3 pts  touching the center ball, ball in ring, center ball in ring
  2 pts  in ring, not touching
  1 pt   the single ball outside the ring closest to the center ball;
         ties go to the first ball in evaluation order (player 1 list, then
         player 2 list)
"""

import enum
from dataclasses import dataclass
from typing import List, NamedTuple, Optional

from table import (
    Ball, Owner, TableSnapshot,
    CENTER_RING_RADIUS, TOUCHING_DISTANCE,
    POINTS_TOUCHING_IN_RING, POINTS_IN_RING, POINTS_CLOSEST,
    planar_distance, distance_from_origin,
)


class ScoringRule(enum.Enum):
    TOUCHING_IN_RING = "touching_in_ring"
    IN_RING = "in_ring"
    CLOSEST = "closest"


RULE_POINTS = {
    ScoringRule.TOUCHING_IN_RING: POINTS_TOUCHING_IN_RING,
    ScoringRule.IN_RING: POINTS_IN_RING,
    ScoringRule.CLOSEST: POINTS_CLOSEST,
}


class ScoreResult(NamedTuple):
    """Points earned by each player in one round."""
    player1: int
    player2: int

    def for_owner(self, owner: Owner) -> int:
        if owner == Owner.PLAYER_1:
            return self.player1
        if owner == Owner.PLAYER_2:
            return self.player2
        return 0


@dataclass
class BallMetrics:
    ball: Ball
    distance_to_center_ball: float
    distance_from_center: float
    touching: bool
    in_ring: bool
    rule: Optional[ScoringRule] = None

    @property
    def points(self) -> int:
        return RULE_POINTS[self.rule] if self.rule is not None else 0


def _measure(ball: Ball, center: Ball) -> BallMetrics:
    dist_center_ball = planar_distance(ball.position, center.position)
    dist_origin = distance_from_origin(ball.position)
    return BallMetrics(
        ball=ball,
        distance_to_center_ball=dist_center_ball,
        distance_from_center=dist_origin,
        touching=dist_center_ball <= TOUCHING_DISTANCE,
        in_ring=dist_origin <= CENTER_RING_RADIUS,
    )


def evaluate_balls(snapshot: Optional[TableSnapshot]) -> List[BallMetrics]:
    """Per-ball metrics and awarded rule for every active ball, in evaluation order."""
    if snapshot is None:
        return []

    center = snapshot.center_ball
    center_in_ring = distance_from_origin(center.position) <= CENTER_RING_RADIUS
    metrics = [_measure(b, center) for b in snapshot.evaluation_order() if b.active]

    for m in metrics:
        if m.touching and m.in_ring and center_in_ring:
            m.rule = ScoringRule.TOUCHING_IN_RING
        elif m.in_ring and not m.touching:
            m.rule = ScoringRule.IN_RING

    outside = [m for m in metrics if not m.in_ring]
    if outside:
        # min() keeps the first of equal keys
        closest = min(outside, key=lambda m: m.distance_to_center_ball)
        closest.rule = ScoringRule.CLOSEST

    return metrics


def score_round(snapshot: Optional[TableSnapshot]) -> ScoreResult:
    """Round points per player. A missing snapshot scores (0, 0)."""
    p1 = p2 = 0
    for m in evaluate_balls(snapshot):
        if m.ball.owner == Owner.PLAYER_1:
            p1 += m.points
        elif m.ball.owner == Owner.PLAYER_2:
            p2 += m.points
    return ScoreResult(p1, p2)


def score_breakdown(snapshot: Optional[TableSnapshot]) -> str:
    if snapshot is None:
        return "No table snapshot"

    metrics = evaluate_balls(snapshot)
    result = score_round(snapshot)
    center_in_ring = snapshot.center_ball.is_in_ring()

    lines = [
        f"Player 1: {result.player1} points",
        f"Player 2: {result.player2} points",
        "",
        f"Center ball in ring: {center_in_ring}",
        "",
    ]
    for m in metrics:
        rule = m.rule.value if m.rule else "-"
        lines.append(
            f"P{int(m.ball.owner)} {m.ball.ball_id}: Dist={m.distance_from_center:.2f}, "
            f"Touch={m.touching}, InRing={m.in_ring}, Rule={rule} (+{m.points})"
        )
    return "\n".join(lines)
