"""
CenterBall Table Model
Ball / snapshot value types, table constants and planar distance helpers.
"""

import enum
import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional

# ──────────────────────────────────────────────
# Constants (table units)
# ──────────────────────────────────────────────
# Playable area; physics and scoring use the x-z plane only
BOUNDARY_X_MIN: float = -180.0
BOUNDARY_X_MAX: float = 180.0
BOUNDARY_Z_MIN: float = -280.0
BOUNDARY_Z_MAX: float = 280.0

# Scoring zones
CENTER_RING_RADIUS: float = 2.5
TOUCHING_DISTANCE: float = 0.8  # 2 * ball radius approximation

# Scoring points
POINTS_TOUCHING_IN_RING: int = 3
POINTS_IN_RING: int = 2
POINTS_CLOSEST: int = 1

# Ball layout
BALLS_PER_PLAYER: int = 5
BALL_Y_POSITION: float = 0.4  # visual height above the table
PLAYER_BALL_RADIUS: float = 18.0
PLAYER1_START_Z: float = 150.0
PLAYER2_START_Z: float = -150.0

# Game rules
TARGET_SCORE_STANDARD: int = 21
TARGET_SCORE_QUICK: int = 11


class Owner(enum.IntEnum):
    NEUTRAL = 0
    PLAYER_1 = 1
    PLAYER_2 = 2


# ──────────────────────────────────────────────
# Planar geometry
# ──────────────────────────────────────────────
def planar_distance(a, b) -> float:
    """Distance between two positions on the x-z plane (y ignored)."""
    dx = float(b[0]) - float(a[0])
    dz = float(b[2]) - float(a[2])
    return float(np.hypot(dx, dz))


def distance_from_origin(p) -> float:
    return float(np.hypot(float(p[0]), float(p[2])))


def is_within_bounds(p) -> bool:
    return (BOUNDARY_X_MIN <= p[0] <= BOUNDARY_X_MAX and
            BOUNDARY_Z_MIN <= p[2] <= BOUNDARY_Z_MAX)


def clamp_to_boundary(p) -> np.ndarray:
    """Clamp x and z into the boundary rectangle; y is carried through."""
    p = np.array(p, dtype=float)
    p[0] = np.clip(p[0], BOUNDARY_X_MIN, BOUNDARY_X_MAX)
    p[2] = np.clip(p[2], BOUNDARY_Z_MIN, BOUNDARY_Z_MAX)
    return p


def start_position(owner: Owner, index: int) -> np.ndarray:
    """Round-start position of a ball: center at origin, players on their rows."""
    if owner == Owner.NEUTRAL:
        return np.array([0.0, BALL_Y_POSITION, 0.0])
    x_offset = (index - 2) * (PLAYER_BALL_RADIUS * 3)
    z = PLAYER1_START_Z if owner == Owner.PLAYER_1 else PLAYER2_START_Z
    return np.array([x_offset, BALL_Y_POSITION, z])


# ──────────────────────────────────────────────
# Value types
# ──────────────────────────────────────────────
@dataclass
class Ball:
    """A ball on the table. ``active`` turns True once it has been shot this round."""
    ball_id: str
    position: np.ndarray = field(default_factory=lambda: np.array([0.0, BALL_Y_POSITION, 0.0]))
    owner: Owner = Owner.NEUTRAL
    active: bool = False

    def __post_init__(self):
        self.position = np.array(self.position, dtype=float)
        self.owner = Owner(self.owner)

    def distance_to(self, other: "Ball") -> float:
        return planar_distance(self.position, other.position)

    def distance_from_center(self) -> float:
        return distance_from_origin(self.position)

    def is_touching(self, other: "Ball") -> bool:
        return self.distance_to(other) <= TOUCHING_DISTANCE

    def is_in_ring(self) -> bool:
        return self.distance_from_center() <= CENTER_RING_RADIUS

    def copy(self) -> "Ball":
        return Ball(self.ball_id, self.position.copy(), self.owner, self.active)

    def to_dict(self) -> dict:
        return {
            "id": self.ball_id,
            "pos": [round(float(v), 5) for v in self.position],
            "owner": int(self.owner),
            "active": self.active,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Ball":
        pos = data["pos"]
        if len(pos) not in (2, 3):
            raise ValueError(f"ball '{data.get('id')}': pos must be [x, z] or [x, y, z]")
        if len(pos) == 2:
            pos = [float(pos[0]), BALL_Y_POSITION, float(pos[1])]
        return cls(str(data["id"]), pos, Owner(int(data.get("owner", 0))),
                   bool(data.get("active", False)))


@dataclass
class TableSnapshot:
    """Center ball plus both players' balls. List order breaks scoring ties."""
    center_ball: Ball
    player1_balls: List[Ball] = field(default_factory=list)
    player2_balls: List[Ball] = field(default_factory=list)

    @classmethod
    def initial(cls, balls_per_player: int = BALLS_PER_PLAYER) -> "TableSnapshot":
        center = Ball("center", start_position(Owner.NEUTRAL, 0), Owner.NEUTRAL)
        p1 = [Ball(f"p1_ball_{i}", start_position(Owner.PLAYER_1, i), Owner.PLAYER_1)
              for i in range(balls_per_player)]
        p2 = [Ball(f"p2_ball_{i}", start_position(Owner.PLAYER_2, i), Owner.PLAYER_2)
              for i in range(balls_per_player)]
        return cls(center, p1, p2)

    def balls_for(self, owner: Owner) -> List[Ball]:
        if owner == Owner.PLAYER_1:
            return self.player1_balls
        if owner == Owner.PLAYER_2:
            return self.player2_balls
        return [self.center_ball]

    def evaluation_order(self) -> List[Ball]:
        """Player 1's balls in list order, then player 2's."""
        return list(self.player1_balls) + list(self.player2_balls)

    def find(self, ball_id: str) -> Optional[Ball]:
        if self.center_ball.ball_id == ball_id:
            return self.center_ball
        return next((b for b in self.evaluation_order() if b.ball_id == ball_id), None)

    def all_balls_played(self) -> bool:
        return all(b.active for b in self.evaluation_order())

    def reset_for_new_round(self) -> None:
        self.center_ball.position = start_position(Owner.NEUTRAL, 0)
        for owner in (Owner.PLAYER_1, Owner.PLAYER_2):
            for i, b in enumerate(self.balls_for(owner)):
                b.position = start_position(owner, i)
                b.active = False

    def copy(self) -> "TableSnapshot":
        return TableSnapshot(
            self.center_ball.copy(),
            [b.copy() for b in self.player1_balls],
            [b.copy() for b in self.player2_balls],
        )

    def to_dict(self) -> dict:
        return {
            "center": self.center_ball.to_dict(),
            "player1": [b.to_dict() for b in self.player1_balls],
            "player2": [b.to_dict() for b in self.player2_balls],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TableSnapshot":
        """Build a snapshot from ``to_dict`` output.

        List membership decides the owner, so ``owner`` may be omitted in
        the per-ball dicts.
        """
        center = Ball.from_dict({**data["center"], "owner": 0})
        p1 = [Ball.from_dict({**b, "owner": 1}) for b in data.get("player1", [])]
        p2 = [Ball.from_dict({**b, "owner": 2}) for b in data.get("player2", [])]
        return cls(center, p1, p2)
