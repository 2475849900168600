"""
BattleDirector — Layer 2 (Game Logic)

Owns the World, the settings and the setup → countdown → playing → finished
state machine. Layer 3 (server.py or any other host) drives it:

  director.frame(timestamp)    — advance timers/simulation, returns the draw list
  director.pending_events      — UI commands (status, countdown) to consume
  director.sounds / .haptics   — feedback cues to consume
  director.game_events         — engine events of the last tick

Timers (countdown, deferred start) are plain fields decremented by step(),
so cancelling one is just clearing it; every state exit clears them all.
"""

import enum
import random

from physics import BattleEngine, Viewport, WorldStatus, Winner, spawn_world
from renderer import render
from settings import (
    GameSettings, NAME_COUNT, MAX_NAME_LENGTH, TOGGLES,
    build_palette, random_name,
)
from feedback import cues_for_event


class GameStatus(enum.Enum):
    SETUP = "setup"
    COUNTDOWN = "countdown"
    PLAYING = "playing"
    FINISHED = "finished"


class BattleDirector:
    """Layer 2: game-state machine + simulation orchestration."""

    # ── Class-level constants ─────────────────────────────────────────────────
    COUNTDOWN_SECONDS  = 3
    COUNTDOWN_INTERVAL = 1.0
    RETRY_DELAY        = 0.05
    RETRY_DELAY_MAX    = 1.0
    MAX_FRAME_DT       = 0.05

    # ── Constructor ───────────────────────────────────────────────────────────

    def __init__(self, rng=None, settings: GameSettings | None = None):
        self.rng = rng if rng is not None else random.Random()
        self.settings = settings if settings is not None else GameSettings()
        self.viewport = Viewport()

        # Game state
        self.status  = GameStatus.SETUP
        self.world   = None
        self.engine  = BattleEngine(self.rng)
        self.palette = build_palette()
        self.outcome = None
        self.countdown = self.COUNTDOWN_SECONDS

        # Timers (None = nothing scheduled)
        self._countdown_timer: float | None = None
        self._retry_timer: float | None = None
        self._retry_delay = self.RETRY_DELAY
        self._last_timestamp: float | None = None

        # Event queues
        self.game_events: list = []            # engine events, last tick only
        self.pending_events: list[dict] = []   # host drains
        self.sounds: list[str] = []            # host drains
        self.haptics: list[list[int]] = []     # host drains

    # ──────────────────────────────────────────────────────────────────────────
    # Main loop
    # ──────────────────────────────────────────────────────────────────────────

    def frame(self, timestamp: float) -> list:
        """Clock entry point: derive dt from the previous timestamp (seconds)."""
        if self._last_timestamp is None:
            dt = 0.0
        else:
            dt = timestamp - self._last_timestamp
        self._last_timestamp = timestamp
        dt = max(0.0, min(dt, self.MAX_FRAME_DT))
        self.step(dt)
        return self.render()

    def step(self, dt: float) -> None:
        """Advance timers and, while playing, the simulation."""
        self.game_events.clear()
        if self.status == GameStatus.COUNTDOWN:
            self._tick_countdown(dt)
        elif self.status == GameStatus.PLAYING:
            self._tick_playing(dt)

    def render(self) -> list:
        """Draw list for the current world; available in every state."""
        return render(self.world, self.palette)

    def _tick_countdown(self, dt: float) -> None:
        if self.world is None:
            if self._retry_timer is not None:
                self._retry_timer -= dt
                if self._retry_timer <= 0:
                    self._try_build_world()
            return

        if self._countdown_timer is None:
            return
        self._countdown_timer -= dt
        while self._countdown_timer is not None and self._countdown_timer <= 0:
            self.countdown -= 1
            self.pending_events.append({"type": "countdown", "value": self.countdown})
            if self.countdown > 0:
                self._play("start")
                self._countdown_timer += self.COUNTDOWN_INTERVAL
            else:
                self._set_status(GameStatus.PLAYING)

    def _tick_playing(self, dt: float) -> None:
        result = self.engine.advance(self.world, dt, sink=self._on_game_event)
        if result == WorldStatus.ENDED:
            self.outcome = self.world.outcome
            self.pending_events.append({"type": "game_over", "winner": self.winner()})
            self._set_status(GameStatus.FINISHED)

    def _on_game_event(self, event) -> None:
        self.game_events.append(event)
        sounds, haptics = cues_for_event(event, self.settings)
        self.sounds.extend(sounds)
        self.haptics.extend(haptics)

    def _play(self, cue: str) -> None:
        if self.settings.enable_sfx:
            self.sounds.append(cue)

    # ──────────────────────────────────────────────────────────────────────────
    # Transitions
    # ──────────────────────────────────────────────────────────────────────────

    def _set_status(self, status: GameStatus) -> None:
        self._cancel_timers()
        print(f"[DIRECTOR] {self.status.value} -> {status.value}")
        self.status = status
        self.pending_events.append({"type": "status", "status": status.value})

    def _cancel_timers(self) -> None:
        self._countdown_timer = None
        self._retry_timer = None
        self._retry_delay = self.RETRY_DELAY

    def _enter_countdown(self) -> None:
        self._set_status(GameStatus.COUNTDOWN)
        self.world = None
        self.outcome = None
        self.countdown = self.COUNTDOWN_SECONDS
        self._try_build_world()

    def _spawn(self):
        self.settings = self.settings.normalized(self.rng)
        return spawn_world(self.settings.character_names, self.viewport, self.rng)

    def _try_build_world(self) -> bool:
        """Build the World for the countdown, or schedule a retry with backoff."""
        world = self._spawn()
        if world is None:
            self._retry_timer = self._retry_delay
            print(f"[DIRECTOR] viewport not ready, retrying in {self._retry_delay:.2f}s")
            self._retry_delay = min(self._retry_delay * 2, self.RETRY_DELAY_MAX)
            return False

        self._retry_timer = None
        self._retry_delay = self.RETRY_DELAY
        self.world = world
        self.palette = build_palette(len(world.agents))
        self.countdown = self.COUNTDOWN_SECONDS
        self._countdown_timer = self.COUNTDOWN_INTERVAL
        self.pending_events.append({"type": "countdown", "value": self.countdown})
        self._play("start")
        return True

    def start_game(self) -> bool:
        if self.status != GameStatus.SETUP:
            return False
        self._enter_countdown()
        return True

    def reset_game(self, to: str = "countdown") -> bool:
        """Finished → setup (edit names) or finished → countdown (play again)."""
        if to not in ("setup", "countdown"):
            raise ValueError(f"reset_game: unknown target '{to}'")
        if self.status != GameStatus.FINISHED:
            return False
        if to == "setup":
            self._set_status(GameStatus.SETUP)
            self.world = None
            self.outcome = None
        else:
            self._enter_countdown()
        return True

    def shutdown(self) -> None:
        """Stop the clock: drop any scheduled continuation."""
        self._cancel_timers()
        self._last_timestamp = None

    # ──────────────────────────────────────────────────────────────────────────
    # Configuration
    # ──────────────────────────────────────────────────────────────────────────

    def set_name(self, index: int, name: str) -> bool:
        if not 0 <= index < NAME_COUNT:
            raise ValueError(f"set_name: index {index} out of range")
        if self.status != GameStatus.SETUP:
            return False
        names = list(self.settings.character_names)
        names += [""] * (NAME_COUNT - len(names))
        names[index] = name[:MAX_NAME_LENGTH]
        self.settings.character_names = names
        return True

    def randomize_names(self) -> bool:
        if self.status != GameStatus.SETUP:
            return False
        self.settings.character_names = [random_name(self.rng) for _ in range(NAME_COUNT)]
        return True

    def set_setting(self, key: str, value: bool) -> None:
        if key not in TOGGLES:
            raise ValueError(f"set_setting: unknown setting '{key}'")
        setattr(self.settings, key, bool(value))

    def resize(self, viewport: Viewport) -> None:
        """Viewport changed. Mid-game this rebuilds the World from scratch."""
        self.viewport = viewport
        if self.status in (GameStatus.SETUP, GameStatus.FINISHED) or not viewport.ready:
            return
        if self.status == GameStatus.COUNTDOWN and self.world is None:
            self._try_build_world()
            return
        # TODO: pause and rescale the running world instead of restarting it
        print(f"[DIRECTOR] resize during {self.status.value}, rebuilding arena")
        self.world = self._spawn()
        self.palette = build_palette(len(self.world.agents))

    # ──────────────────────────────────────────────────────────────────────────
    # HUD
    # ──────────────────────────────────────────────────────────────────────────

    @property
    def elapsed_time(self) -> float:
        return self.world.elapsed_time if self.world is not None else 0.0

    def leaderboard(self) -> list[dict]:
        if self.world is None:
            return []
        return [{"id": a.id, "name": a.name, "is_alive": a.is_alive, "kills": a.kills}
                for a in self.world.agents]

    def winner(self) -> list[dict]:
        """Agents credited with the outcome (one for a win, the tie set otherwise)."""
        if self.outcome is None or self.world is None:
            return []
        if isinstance(self.outcome, Winner):
            ids = [self.outcome.agent_id]
        else:
            ids = list(self.outcome.agent_ids)
        board = {row["id"]: row for row in self.leaderboard()}
        return [board[i] for i in ids if i in board]
