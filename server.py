"""
CenterBall Web Server (FastAPI + WebSocket)

HTTP and WebSocket front end over one GameController per app. Handlers are
``async def`` with no awaits between reading and writing the controller, so
requests touching the game are serialised on the event loop.
"""

import json
import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from config import params_from_env, params_to_dict
from controller import GameController, GameError
from physics import preview_path
from scoring import score_breakdown, score_round
from shot_presets import PRESETS
from table import (
    BOUNDARY_X_MIN, BOUNDARY_X_MAX, BOUNDARY_Z_MIN, BOUNDARY_Z_MAX,
    CENTER_RING_RADIUS, TOUCHING_DISTANCE, TARGET_SCORE_QUICK, TARGET_SCORE_STANDARD, TableSnapshot,
)

log = logging.getLogger(__name__)


# ── Request bodies ──────────────────────────────────────────────────────────

class NewGameRequest(BaseModel):
    player1: str = "Player 1"
    player2: str = "Player 2"
    target_score: Optional[int] = Field(None, ge=1)
    quick: bool = False


class ShotRequest(BaseModel):
    ball_id: str
    angle: float
    power: float


class PreviewRequest(BaseModel):
    ball_id: Optional[str] = None
    position: Optional[List[float]] = None
    angle: float
    power: float
    point_count: Optional[int] = Field(None, ge=0)


class ScoreRequest(BaseModel):
    snapshot: dict


# ── Helpers ─────────────────────────────────────────────────────────────────

def _table_info(ctrl: GameController) -> dict:
    return {
        "boundary": {"x": [BOUNDARY_X_MIN, BOUNDARY_X_MAX],
                     "z": [BOUNDARY_Z_MIN, BOUNDARY_Z_MAX]},
        "ring_radius": CENTER_RING_RADIUS,
        "touching_distance": TOUCHING_DISTANCE,
        "physics": params_to_dict(ctrl.params),
        "presets": sorted(PRESETS),
    }


def _target_score(target_score, quick) -> int:
    """An explicit target wins; otherwise a quick game plays to 11, a standard one to 21."""
    if target_score is not None:
        return int(target_score)
    return TARGET_SCORE_QUICK if quick else TARGET_SCORE_STANDARD


def _preview(ctrl: GameController, ball_id, position, angle, power, point_count) -> list:
    if ball_id is not None:
        path = ctrl.preview(ball_id, angle, power, point_count)
    elif position is not None:
        if len(position) != 3:
            raise ValueError("position must be [x, y, z]")
        path = preview_path(position, angle, power, ctrl.params, point_count)
    else:
        raise ValueError("ball_id or position required")
    return [[round(float(v), 5) for v in p] for p in path]


def _score_payload(snapshot: TableSnapshot) -> dict:
    result = score_round(snapshot)
    return {"player1": result.player1, "player2": result.player2,
            "breakdown": score_breakdown(snapshot)}


def _handle_ws_command(ctrl: GameController, msg) -> dict:
    """Dispatch one WebSocket command; returns the reply message."""
    if not isinstance(msg, dict):
        return {"type": "error", "message": "command must be a JSON object"}
    cmd = str(msg.get("cmd", "")).lower().strip()
    if cmd == "new_game":
        ctrl.start_new_game(msg.get("player1", "Player 1"), msg.get("player2", "Player 2"),
                            _target_score(msg.get("target_score"), bool(msg.get("quick", False))))
        return {"type": "state", "data": ctrl.get_state()}
    if cmd == "shoot":
        shot = ctrl.shoot_ball(str(msg["ball_id"]), float(msg["angle"]), float(msg["power"]))
        if shot is None:
            return {"type": "error", "message": "game is not being played"}
        return {"type": "shot", "data": shot}
    if cmd == "preview":
        count = msg.get("point_count")
        points = _preview(ctrl, msg.get("ball_id"), msg.get("position"),
                          float(msg["angle"]), float(msg["power"]),
                          int(count) if count is not None else None)
        return {"type": "preview", "points": points}
    if cmd == "get_state":
        return {"type": "state", "data": ctrl.get_state()}
    return {"type": "error", "message": f"Unknown cmd '{cmd}'. Use new_game/shoot/preview/get_state."}


# ── App factory ─────────────────────────────────────────────────────────────

def create_app(controller: Optional[GameController] = None) -> FastAPI:
    app = FastAPI(title="CenterBall")
    app.state.ctrl = controller or GameController(params_from_env())

    def _ctrl(request: Request) -> GameController:
        return request.app.state.ctrl

    @app.get("/")
    async def root(request: Request):
        return _table_info(_ctrl(request))

    @app.get("/api/game")
    async def get_game(request: Request):
        return _ctrl(request).get_state()

    @app.post("/api/game")
    async def new_game(body: NewGameRequest, request: Request):
        ctrl = _ctrl(request)
        ctrl.start_new_game(body.player1, body.player2,
                            _target_score(body.target_score, body.quick))
        return ctrl.get_state()

    @app.post("/api/shot")
    async def shoot(body: ShotRequest, request: Request):
        ctrl = _ctrl(request)
        try:
            shot = ctrl.shoot_ball(body.ball_id, body.angle, body.power)
        except GameError as exc:
            raise HTTPException(status_code=409, detail=str(exc))
        if shot is None:
            raise HTTPException(status_code=409, detail="game is not being played")
        return {"shot": shot, "state": ctrl.get_state(), "events": ctrl.drain_events()}

    @app.post("/api/preview")
    async def preview(body: PreviewRequest, request: Request):
        try:
            points = _preview(_ctrl(request), body.ball_id, body.position,
                              body.angle, body.power, body.point_count)
        except GameError as exc:
            raise HTTPException(status_code=409, detail=str(exc))
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        return {"points": points}

    @app.post("/api/score")
    async def score(body: ScoreRequest):
        try:
            snapshot = TableSnapshot.from_dict(body.snapshot)
        except (KeyError, TypeError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=f"invalid snapshot: {exc}")
        return _score_payload(snapshot)

    @app.get("/api/presets")
    async def list_presets():
        return {"presets": sorted(PRESETS)}

    @app.post("/api/presets/{name}")
    async def load_preset(name: str, request: Request):
        fn = PRESETS.get(name)
        if fn is None:
            raise HTTPException(status_code=404, detail=f"unknown preset '{name}'")
        result = fn(run=True)
        ctrl = _ctrl(request)
        ctrl.load_snapshot(result["snapshot"])
        payload = _score_payload(result["snapshot"])
        payload["table"] = result["snapshot"].to_dict()
        return payload

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket):
        await ws.accept()
        ctrl = ws.app.state.ctrl
        await ws.send_text(json.dumps({"type": "init", **_table_info(ctrl)}))
        try:
            while True:
                data = await ws.receive_text()
                try:
                    msg = json.loads(data)
                except json.JSONDecodeError as exc:
                    await ws.send_text(json.dumps({"type": "error", "message": f"JSON error: {exc}"}))
                    continue
                try:
                    reply = _handle_ws_command(ctrl, msg)
                except (GameError, KeyError, TypeError, ValueError) as exc:
                    reply = {"type": "error", "message": str(exc)}
                await ws.send_text(json.dumps(reply))
                await ws.send_text(json.dumps({"type": "events", "events": ctrl.drain_events()}))
        except WebSocketDisconnect:
            log.debug("websocket client disconnected")

    return app


app = create_app()


# ── Run with uvicorn ────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    uvicorn.run("server:app", host="0.0.0.0", port=8000, reload=False)
