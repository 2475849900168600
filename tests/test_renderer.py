"""
Renderer Tests — draw list content and ordering, without any backend.
"""

import sys
import os
import copy
import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from physics import Agent, Arena, Projectile, World
from renderer import render, DrawItem, ARENA_FILL, ARENA_STROKE, FALLBACK_COLOR
from settings import build_palette, CHARACTER_COLORS


def make_world(pixel_ratio=1.0):
    agents = [
        Agent(0, "blueBot", position=[100, 100]),
        Agent(1, "redRanger", position=[200, 100]),
        Agent(2, "goldGuard", position=[300, 100], is_alive=False),
        Agent(3, "g", position=[400, 100]),
    ]
    arena = Arena(center=[250, 250], radius=200.0, initial_radius=220.0,
                  width=500, height=500, pixel_ratio=pixel_ratio)
    return World(agents=agents, arena=arena)


class TestRender:
    """Draw order, colours and omissions."""

    def test_none_world(self):
        assert render(None) == []

    def test_arena_first(self):
        items = render(make_world(pixel_ratio=2.0), build_palette())
        arena = items[0]
        assert arena.shape == "circle"
        assert (arena.x, arena.y, arena.radius) == (250.0, 250.0, 200.0)
        assert arena.fill == ARENA_FILL
        assert arena.stroke == ARENA_STROKE
        assert arena.line_width == 1.0

    def test_live_agents_with_labels(self):
        items = render(make_world(), build_palette())
        texts = [i.text for i in items if i.shape == "text"]
        assert texts == ["BL", "RE", "G"]
        discs = [i for i in items[1:] if i.shape == "circle"]
        assert [d.fill for d in discs] == [CHARACTER_COLORS[0], CHARACTER_COLORS[1], CHARACTER_COLORS[3]]

    def test_label_centered_on_agent(self):
        items = render(make_world(pixel_ratio=2.0), build_palette())
        disc, label = items[1], items[2]
        assert (label.x, label.y) == (disc.x, disc.y)
        assert label.font == "bold 24px sans-serif"

    def test_dead_agents_omitted(self):
        world = make_world()
        for a in world.agents:
            a.is_alive = False
        items = render(world, build_palette())
        assert len(items) == 1

    def test_projectiles_colored_by_owner(self):
        world = make_world()
        world.projectiles = [
            Projectile(0, owner_id=1, position=[120, 120]),
            Projectile(1, owner_id=2, position=[130, 120]),     # dead owner
            Projectile(2, owner_id=99, position=[140, 120]),    # unknown owner
        ]
        items = render(world, build_palette())
        shots = items[1:4]
        assert [s.fill for s in shots] == [CHARACTER_COLORS[1], CHARACTER_COLORS[2], FALLBACK_COLOR]
        assert all(s.radius == 4.0 for s in shots)

    def test_missing_palette_uses_fallback(self):
        items = render(make_world())
        assert all(i.fill == FALLBACK_COLOR for i in items[1:])

    def test_render_does_not_mutate(self):
        world = make_world()
        world.projectiles = [Projectile(0, owner_id=0, position=[10, 10], velocity=[5, 5])]
        snapshot = copy.deepcopy(world)
        render(world, build_palette())
        for a, b in zip(world.agents, snapshot.agents):
            np.testing.assert_array_equal(a.position, b.position)
            assert a.is_alive == b.is_alive
        np.testing.assert_array_equal(world.projectiles[0].position, snapshot.projectiles[0].position)
        assert world.arena.radius == snapshot.arena.radius


class TestDrawItem:

    def test_circle_to_dict(self):
        d = DrawItem("circle", 1.234, 5.678, radius=3.14159, fill="#000").to_dict()
        assert d == {"shape": "circle", "x": 1.23, "y": 5.68, "r": 3.14, "fill": "#000"}

    def test_text_to_dict(self):
        d = DrawItem("text", 10, 20, fill="#fff", text="AB", font="bold 12px sans-serif").to_dict()
        assert d["text"] == "AB"
        assert d["font"] == "bold 12px sans-serif"
        assert "r" not in d
