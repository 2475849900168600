"""
Scene renderer — World → flat draw list.

Pure function of the world state; any 2D backend (canvas, arcade, PIL)
can replay the list in order.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from physics import World

ARENA_FILL = "#F9FAFB"
ARENA_STROKE = "#D1D5DB"
ARENA_LINE_WIDTH = 0.5      # CSS px
LABEL_COLOR = "#fff"
LABEL_FONT_SIZE = 12        # CSS px
FALLBACK_COLOR = "#fff"


@dataclass(frozen=True)
class DrawItem:
    shape: str                      # "circle" | "text"
    x: float
    y: float
    radius: float = 0.0
    fill: Optional[str] = None
    stroke: Optional[str] = None
    line_width: float = 0.0
    text: str = ""
    font: str = ""

    def to_dict(self) -> dict:
        d = {"shape": self.shape, "x": round(self.x, 2), "y": round(self.y, 2)}
        if self.shape == "circle":
            d["r"] = round(self.radius, 2)
        if self.fill is not None:
            d["fill"] = self.fill
        if self.stroke is not None:
            d["stroke"] = self.stroke
            d["line_width"] = round(self.line_width, 3)
        if self.text:
            d["text"] = self.text
            d["font"] = self.font
        return d


def render(world: Optional[World], palette: Optional[Dict[int, str]] = None) -> List[DrawItem]:
    """Arena disk, then projectiles, then live agents with their initials."""
    if world is None:
        return []
    palette = palette or {}
    arena = world.arena
    dpr = arena.pixel_ratio

    items = [DrawItem(
        "circle", float(arena.center[0]), float(arena.center[1]),
        radius=float(arena.radius), fill=ARENA_FILL,
        stroke=ARENA_STROKE, line_width=ARENA_LINE_WIDTH * dpr,
    )]

    for p in world.projectiles:
        owner = world.find_agent(p.owner_id)
        color = palette.get(owner.id, FALLBACK_COLOR) if owner is not None else FALLBACK_COLOR
        items.append(DrawItem("circle", float(p.position[0]), float(p.position[1]),
                              radius=float(p.radius), fill=color))

    font = f"bold {LABEL_FONT_SIZE * dpr:g}px sans-serif"
    for agent in world.agents:
        if not agent.is_alive:
            continue
        x, y = float(agent.position[0]), float(agent.position[1])
        items.append(DrawItem("circle", x, y, radius=float(agent.radius),
                              fill=palette.get(agent.id, FALLBACK_COLOR)))
        items.append(DrawItem("text", x, y, fill=LABEL_COLOR,
                              text=agent.initials, font=font))
    return items
