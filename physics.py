"""
Arena Royale Simulation Core
Agent motion, circular boundary reflection, projectiles, arena shrink, win detection.
"""

import enum
import math
import numpy as np
from dataclasses import asdict, dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

# ──────────────────────────────────────────────
# Constants (canvas pixels, seconds)
# ──────────────────────────────────────────────
# Read by name every call, so a host can mutate them live:
#   import physics as _phys;  _phys.BULLET_SPEED = 300
CHARACTER_SPEED: float = 110.0          # px/s
BULLET_SPEED: float = 220.0             # px/s
BULLET_LIFETIME: float = 4.0            # s
FIRE_RATE_MIN: float = 1.0              # s between shots (lower bound)
FIRE_RATE_MAX: float = 2.0              # s between shots (upper bound)
CHARACTER_RADIUS: float = 15.0          # CSS px, scaled by pixel ratio
BULLET_RADIUS: float = 4.0              # CSS px, scaled by pixel ratio

# Arena
ARENA_SHRINK_START_TIME: float = 10.0
ARENA_SHRINK_DURATION: float = 30.0
FINAL_ARENA_SCALE: float = 0.2
INITIAL_CIRCLE_DIAMETER_SCALE: float = 0.9   # of the smaller canvas side
SPAWN_RADIUS_SCALE: float = 0.6              # spawn within 60% of the arena radius

# Numerical thresholds
DISTANCE_EPSILON: float = 1e-9
BOUNDARY_EPSILON: float = 1e-6         # px kept between a clamped agent and the wall


# ──────────────────────────────────────────────
# Vector helpers
# ──────────────────────────────────────────────
def vec_len(v: np.ndarray) -> float:
    return float(np.hypot(v[0], v[1]))


def distance(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.hypot(a[0] - b[0], a[1] - b[1]))


def normalize(v: np.ndarray, eps: float = DISTANCE_EPSILON) -> np.ndarray:
    """Unit vector along v, or the zero vector when v is (near) zero."""
    n = vec_len(v)
    if n < eps:
        return np.zeros(2)
    return np.asarray(v, dtype=float) / n


def reflect(v: np.ndarray, normal: np.ndarray) -> np.ndarray:
    """Reflect v about a unit normal: v' = v - 2(v·n)n."""
    return v - 2.0 * float(np.dot(v, normal)) * normal


def heading(angle: float, speed: float) -> np.ndarray:
    return np.array([math.cos(angle) * speed, math.sin(angle) * speed])


def random_between(rng, lo: float, hi: float) -> float:
    return rng.random() * (hi - lo) + lo


# ──────────────────────────────────────────────
# Entities
# ──────────────────────────────────────────────
@dataclass
class Agent:
    """Autonomous combatant."""
    id: int
    name: str
    position: np.ndarray = field(default_factory=lambda: np.zeros(2))
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(2))
    radius: float = CHARACTER_RADIUS
    is_alive: bool = True
    kills: int = 0
    fire_cooldown: float = FIRE_RATE_MAX

    def __post_init__(self):
        self.position = np.array(self.position, dtype=float)
        self.velocity = np.array(self.velocity, dtype=float)

    @property
    def initials(self) -> str:
        return self.name[:2].upper()


@dataclass
class Projectile:
    id: int
    owner_id: int
    position: np.ndarray = field(default_factory=lambda: np.zeros(2))
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(2))
    radius: float = BULLET_RADIUS
    lifetime: float = BULLET_LIFETIME

    def __post_init__(self):
        self.position = np.array(self.position, dtype=float)
        self.velocity = np.array(self.velocity, dtype=float)


@dataclass
class Arena:
    """Circular playable region. Only the shrink schedule touches `radius`."""
    center: np.ndarray
    radius: float
    initial_radius: float
    width: float = 0.0
    height: float = 0.0
    pixel_ratio: float = 1.0

    def __post_init__(self):
        self.center = np.array(self.center, dtype=float)


@dataclass(frozen=True)
class Viewport:
    """Drawable surface in CSS pixels; canvas size is scaled by pixel_ratio."""
    width: float = 0.0
    height: float = 0.0
    pixel_ratio: float = 1.0

    @property
    def ready(self) -> bool:
        return self.width > 0 and self.height > 0

    @property
    def canvas_size(self) -> Tuple[float, float]:
        return self.width * self.pixel_ratio, self.height * self.pixel_ratio


# ──────────────────────────────────────────────
# Events
# ──────────────────────────────────────────────
@dataclass(frozen=True)
class Winner:
    agent_id: int


@dataclass(frozen=True)
class Tie:
    agent_ids: Tuple[int, ...]


@dataclass(frozen=True)
class Bounced:
    agent_id: int
    type: str = field(default="bounce", init=False)


@dataclass(frozen=True)
class Fired:
    agent_id: int
    projectile_id: int
    type: str = field(default="fire", init=False)


@dataclass(frozen=True)
class Hit:
    victim_id: int
    killer_id: int
    type: str = field(default="hit", init=False)


@dataclass(frozen=True)
class GameEnded:
    outcome: object   # Winner | Tie
    type: str = field(default="game_ended", init=False)


def event_to_dict(event) -> dict:
    """Flatten an event into a JSON-friendly dict."""
    if isinstance(event, GameEnded):
        out = event.outcome
        if isinstance(out, Winner):
            return {"type": event.type, "outcome": "winner", "agents": [out.agent_id]}
        return {"type": event.type, "outcome": "tie", "agents": list(out.agent_ids)}
    return asdict(event)


class WorldStatus(enum.Enum):
    RUNNING = 0
    ENDED = 1


# ──────────────────────────────────────────────
# World
# ──────────────────────────────────────────────
@dataclass
class World:
    agents: List[Agent]
    arena: Arena
    projectiles: List[Projectile] = field(default_factory=list)
    elapsed_time: float = 0.0
    next_projectile_id: int = 0
    outcome: Optional[object] = None

    def find_agent(self, agent_id: int) -> Optional[Agent]:
        return next((a for a in self.agents if a.id == agent_id), None)

    def alive_agents(self) -> List[Agent]:
        return [a for a in self.agents if a.is_alive]


def spawn_world(names: Sequence[str], viewport: Viewport, rng) -> Optional[World]:
    """
    Build a fresh World for one game.

    Returns None when the viewport has no area yet; callers retry later
    instead of building a degenerate arena.
    """
    if not viewport.ready:
        return None

    dpr = viewport.pixel_ratio
    width, height = viewport.canvas_size
    initial_radius = (min(width, height) / 2) * INITIAL_CIRCLE_DIAMETER_SCALE
    center = np.array([width / 2, height / 2])

    arena = Arena(center=center, radius=initial_radius, initial_radius=initial_radius,
                  width=width, height=height, pixel_ratio=dpr)

    agents = []
    for i, name in enumerate(names):
        angle = random_between(rng, 0.0, 2 * math.pi)
        agents.append(Agent(
            id=i,
            name=name,
            position=center.copy(),
            velocity=heading(angle, CHARACTER_SPEED),
            radius=CHARACTER_RADIUS * dpr,
            fire_cooldown=random_between(rng, FIRE_RATE_MIN, FIRE_RATE_MAX),
        ))

    # Scatter spawn points inside the inner part of the ring
    spawn_limit = arena.radius * SPAWN_RADIUS_SCALE
    for agent in agents:
        angle = random_between(rng, 0.0, 2 * math.pi)
        dist = random_between(rng, 0.0, spawn_limit)
        agent.position = center + np.array([math.cos(angle), math.sin(angle)]) * dist

    return World(agents=agents, arena=arena)


# ──────────────────────────────────────────────
# Engine
# ──────────────────────────────────────────────
class BattleEngine:
    """Advances a World by dt seconds. Randomness comes only from `rng`."""

    def __init__(self, rng):
        self.rng = rng
        self.events: list = []

    def _emit(self, event, sink: Optional[Callable]) -> None:
        self.events.append(event)
        if sink is not None:
            sink(event)

    # ──────────────────────────────────────────
    # Shrink schedule
    # ──────────────────────────────────────────
    @staticmethod
    def shrink_radius(arena: Arena, elapsed: float) -> float:
        """Scheduled radius for the given elapsed play time."""
        if elapsed < ARENA_SHRINK_START_TIME:
            return arena.initial_radius
        if ARENA_SHRINK_DURATION > 0:
            progress = (elapsed - ARENA_SHRINK_START_TIME) / ARENA_SHRINK_DURATION
        else:
            progress = 1.0
        progress = max(0.0, min(1.0, progress))
        final_radius = arena.initial_radius * FINAL_ARENA_SCALE
        return arena.initial_radius - (arena.initial_radius - final_radius) * progress

    def _update_arena(self, world: World) -> None:
        if world.elapsed_time >= ARENA_SHRINK_START_TIME:
            target = self.shrink_radius(world.arena, world.elapsed_time)
            # never re-expand, even if the tunables change mid-game
            world.arena.radius = min(world.arena.radius, target)

    # ──────────────────────────────────────────
    # Agents
    # ──────────────────────────────────────────
    def _move_agent(self, agent: Agent, arena: Arena, dt: float, sink) -> None:
        agent.position = agent.position + agent.velocity * dt

        offset = agent.position - arena.center
        dist = vec_len(offset)
        if dist + agent.radius <= arena.radius or dist < DISTANCE_EPSILON:
            return

        normal = normalize(offset)
        agent.velocity = reflect(agent.velocity, normal)
        # clamp just inside the wall so float error cannot re-trigger next tick
        inset = max(0.0, arena.radius - agent.radius - BOUNDARY_EPSILON)
        agent.position = arena.center + normal * inset
        self._emit(Bounced(agent.id), sink)

    def _try_fire(self, world: World, agent: Agent, dt: float, sink) -> None:
        agent.fire_cooldown -= dt
        if agent.fire_cooldown > 0:
            return
        agent.fire_cooldown = random_between(self.rng, FIRE_RATE_MIN, FIRE_RATE_MAX)
        angle = random_between(self.rng, 0.0, 2 * math.pi)
        projectile = Projectile(
            id=world.next_projectile_id,
            owner_id=agent.id,
            position=agent.position.copy(),
            velocity=heading(angle, BULLET_SPEED),
            radius=BULLET_RADIUS * world.arena.pixel_ratio,
            lifetime=BULLET_LIFETIME,
        )
        world.next_projectile_id += 1
        world.projectiles.append(projectile)
        self._emit(Fired(agent.id, projectile.id), sink)

    # ──────────────────────────────────────────
    # Projectiles
    # ──────────────────────────────────────────
    def _update_projectiles(self, world: World, dt: float, sink) -> List[int]:
        """Integrate projectiles and resolve hits. Returns ids killed this tick."""
        arena = world.arena
        killed: List[int] = []
        kept: List[Projectile] = []

        for p in world.projectiles:
            p.position = p.position + p.velocity * dt
            p.lifetime -= dt

            if p.lifetime <= 0:
                continue
            if distance(p.position, arena.center) > arena.radius:
                continue

            victim = None
            for agent in world.agents:
                if not agent.is_alive or agent.id == p.owner_id:
                    continue
                if distance(p.position, agent.position) < p.radius + agent.radius:
                    victim = agent
                    break

            if victim is None:
                kept.append(p)
                continue

            victim.is_alive = False
            killed.append(victim.id)
            killer = world.find_agent(p.owner_id)
            if killer is not None:
                killer.kills += 1
            self._emit(Hit(victim.id, p.owner_id), sink)

        world.projectiles = kept
        return killed

    # ──────────────────────────────────────────
    # Win detection
    # ──────────────────────────────────────────
    @staticmethod
    def resolve_outcome(world: World, died_this_tick: Sequence[int]):
        """Winner/Tie for the current agent states, or None while 2+ are alive."""
        alive = world.alive_agents()
        if len(alive) >= 2:
            return None
        if len(alive) == 1:
            return Winner(alive[0].id)

        died = set(died_this_tick)
        just_died = [a for a in world.agents if a.id in died]
        with_kills = [a for a in just_died if a.kills > 0]
        if len(with_kills) == 1:
            return Tie((with_kills[0].id,))
        return Tie(tuple(a.id for a in world.agents if not a.is_alive))

    # ──────────────────────────────────────────
    # Main update
    # ──────────────────────────────────────────
    def advance(self, world: World, dt: float, sink: Optional[Callable] = None) -> WorldStatus:
        """Advance the world by dt seconds (dt >= 0)."""
        self.events.clear()
        if world.outcome is not None:
            return WorldStatus.ENDED

        world.elapsed_time += dt
        self._update_arena(world)

        for agent in world.agents:
            if not agent.is_alive:
                continue
            self._move_agent(agent, world.arena, dt, sink)
            self._try_fire(world, agent, dt, sink)

        killed = self._update_projectiles(world, dt, sink)

        outcome = self.resolve_outcome(world, killed)
        if outcome is None:
            return WorldStatus.RUNNING
        world.outcome = outcome
        self._emit(GameEnded(outcome), sink)
        return WorldStatus.ENDED
