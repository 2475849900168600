"""
Arena Royale Web Server — Layer 3 (FastAPI + WebSocket)

Serves the canvas frontend and runs the battle loop,
streaming draw lists and feedback cues to browser clients over WebSocket.
"""

import asyncio
import json
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse, Response
from fastapi.staticfiles import StaticFiles

from director import BattleDirector
from feedback import SOUND_CUES, wav_bytes
from physics import Viewport, event_to_dict
import physics as _phys

# ── Director ────────────────────────────────────────────────────────────────

director = BattleDirector()


# ── Lifespan (startup/shutdown) ─────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    task = asyncio.create_task(game_loop())
    yield
    task.cancel()
    director.shutdown()


app = FastAPI(lifespan=lifespan)

clients: list[WebSocket] = []

# ── Battle params (live tuning of physics module constants) ─────────────────

BATTLE_PARAMS = [
    ("CHARACTER_SPEED",         "Agent Speed",     20.0,  400.0, 10.0),
    ("BULLET_SPEED",            "Bullet Speed",    50.0,  800.0, 10.0),
    ("BULLET_LIFETIME",         "Bullet Life",      0.5,   10.0,  0.5),
    ("FIRE_RATE_MIN",           "Fire Min",         0.1,    5.0,  0.1),
    ("FIRE_RATE_MAX",           "Fire Max",         0.1,    5.0,  0.1),
    ("ARENA_SHRINK_START_TIME", "Shrink Start",     0.0,   60.0,  1.0),
    ("ARENA_SHRINK_DURATION",   "Shrink Duration",  1.0,  120.0,  1.0),
    ("FINAL_ARENA_SCALE",       "Final Scale",      0.05,   1.0,  0.05),
]

PARAM_DEFAULTS = {attr: getattr(_phys, attr) for attr, *_ in BATTLE_PARAMS}

# ── Async game loop ─────────────────────────────────────────────────────────

TARGET_FPS = 60
FRAME_DT = 1.0 / TARGET_FPS


async def game_loop():
    """Main battle loop running at ~60 fps."""
    while True:
        now = time.perf_counter()
        director.frame(now)

        if clients:
            frame_msg = _build_frame_message()
            dead: list[WebSocket] = []
            for ws in clients:
                try:
                    await ws.send_text(frame_msg)
                except Exception:
                    dead.append(ws)
            for ws in dead:
                if ws in clients:
                    clients.remove(ws)
        else:
            _drain_feedback()

        elapsed = time.perf_counter() - now
        sleep_time = FRAME_DT - elapsed
        if sleep_time > 0:
            await asyncio.sleep(sleep_time)
        else:
            await asyncio.sleep(0)


def _drain_feedback() -> tuple[list, list, list]:
    events = list(director.pending_events)
    sounds = list(director.sounds)
    haptics = list(director.haptics)
    director.pending_events.clear()
    director.sounds.clear()
    director.haptics.clear()
    return events, sounds, haptics


def _build_frame_message() -> str:
    """Serialize current scene + HUD into a JSON frame message."""
    events, sounds, haptics = _drain_feedback()
    events += [event_to_dict(ev) for ev in director.game_events]

    frame = {
        "type": "frame",
        "status": director.status.value,
        "countdown": director.countdown,
        "elapsed": round(director.elapsed_time, 3),
        "draw": [item.to_dict() for item in director.render()],
        "events": events,
        "sounds": sounds,
        "haptics": haptics,
        "leaderboard": director.leaderboard(),
        "winner": director.winner(),
        "settings": director.settings.to_dict(),
    }
    return json.dumps(frame, separators=(',', ':'))


# ── Command handlers ────────────────────────────────────────────────────────

def _get_params_data() -> list:
    """Return all battle params with current values."""
    result = []
    for attr, label, mn, mx, step in BATTLE_PARAMS:
        result.append({
            "attr": attr, "label": label,
            "value": round(getattr(_phys, attr), 6),
            "min": mn, "max": mx, "step": step,
        })
    return result


def _adjust_param(idx: int, direction: int, fine: bool = False) -> dict | None:
    if not 0 <= idx < len(BATTLE_PARAMS):
        return None
    attr, label, mn, mx, step = BATTLE_PARAMS[idx]
    s = step / 10.0 if fine else step
    cur = getattr(_phys, attr)
    new_val = max(mn, min(mx, cur + direction * s))
    setattr(_phys, attr, new_val)
    return {"type": "param_update", "index": idx, "value": round(new_val, 6)}


def _reset_params() -> None:
    for attr, dflt in PARAM_DEFAULTS.items():
        setattr(_phys, attr, dflt)


def _handle_command(msg: dict) -> dict | None:
    """Apply one client command. Returns a direct reply message, if any."""
    cmd = msg.get("cmd", "")
    if cmd == "viewport":
        director.resize(Viewport(
            width=float(msg.get("width", 0.0)),
            height=float(msg.get("height", 0.0)),
            pixel_ratio=float(msg.get("dpr", 1.0)),
        ))
    elif cmd == "set_name":
        director.set_name(int(msg.get("index", 0)), str(msg.get("name", "")))
    elif cmd == "randomize_names":
        director.randomize_names()
    elif cmd == "set_setting":
        value = msg.get("value")
        if not isinstance(value, bool):
            print(f"[SERVER] set_setting: expected true/false, got {value!r}")
            return None
        director.set_setting(str(msg.get("key", "")), value)
    elif cmd == "start":
        director.start_game()
    elif cmd == "reset":
        director.reset_game(str(msg.get("to", "countdown")))
    elif cmd == "get_params":
        return {"type": "params", "data": _get_params_data()}
    elif cmd == "adjust_param":
        return _adjust_param(int(msg.get("index", 0)), int(msg.get("direction", 0)),
                             bool(msg.get("fine", False)))
    elif cmd == "reset_params":
        _reset_params()
        return {"type": "params", "data": _get_params_data()}
    else:
        print(f"[SERVER] unknown cmd '{cmd}'")
    return None


# ── WebSocket endpoint ──────────────────────────────────────────────────────

@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    clients.append(ws)

    await ws.send_text(json.dumps({
        "type": "init",
        "status": director.status.value,
        "settings": director.settings.to_dict(),
        "palette": director.palette,
        "sounds": sorted(SOUND_CUES),
    }))

    try:
        while True:
            data = await ws.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                print("[SERVER] dropped malformed message")
                continue
            if not isinstance(msg, dict):
                continue
            try:
                reply = _handle_command(msg)
            except (ValueError, TypeError) as exc:
                print(f"[SERVER] command rejected: {exc}")
                continue
            if reply is not None:
                await ws.send_text(json.dumps(reply))
    except WebSocketDisconnect:
        pass
    finally:
        if ws in clients:
            clients.remove(ws)


# ── Sounds, static files + root route ───────────────────────────────────────

@app.get("/sounds/{cue}.wav")
async def sound(cue: str):
    if cue not in SOUND_CUES:
        return Response(status_code=404)
    return Response(content=wav_bytes(cue), media_type="audio/wav")


STATIC_DIR = Path(__file__).parent / "static"

app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")


@app.get("/")
async def root():
    return FileResponse(STATIC_DIR / "index.html")


# ── Run with uvicorn ────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("server:app", host="0.0.0.0", port=8000, reload=False)
