"""
Game configuration: agent names, feature toggles, colour palette.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Sequence

NAME_COUNT: int = 4
MAX_NAME_LENGTH: int = 16

DEFAULT_NAMES = ["BlueBot", "RedRanger", "GoldGuard", "GreenGunner"]
CHARACTER_COLORS = ["#4285F4", "#DB4437", "#F4B400", "#0F9D58"]

_NAME_PREFIXES = ["Cyber", "Robo", "Giga", "Nano", "Pixel", "Quantum"]
_NAME_SUFFIXES = ["Striker", "Defender", "Blaster", "Knight", "Ninja", "Mage"]

TOGGLES = ("enable_sfx", "enable_haptics")


def random_name(rng) -> str:
    """Placeholder name such as 'CyberNinja'."""
    prefix = _NAME_PREFIXES[int(rng.random() * len(_NAME_PREFIXES))]
    suffix = _NAME_SUFFIXES[int(rng.random() * len(_NAME_SUFFIXES))]
    return f"{prefix}{suffix}"


def normalize_names(names: Sequence[str], rng, count: int = NAME_COUNT) -> List[str]:
    """Exactly `count` non-blank names of at most MAX_NAME_LENGTH characters.

    Missing or blank entries get a generated placeholder; extras are dropped.
    """
    out = []
    for i in range(count):
        name = names[i] if i < len(names) else ""
        name = (name or "").strip()[:MAX_NAME_LENGTH]
        if not name:
            name = random_name(rng)
        out.append(name)
    return out


def build_palette(count: int = NAME_COUNT) -> Dict[int, str]:
    """agent id -> fill colour."""
    return {i: CHARACTER_COLORS[i % len(CHARACTER_COLORS)] for i in range(count)}


@dataclass
class GameSettings:
    character_names: List[str] = field(default_factory=lambda: list(DEFAULT_NAMES))
    enable_sfx: bool = True
    enable_haptics: bool = True

    def normalized(self, rng) -> "GameSettings":
        return replace(self, character_names=normalize_names(self.character_names, rng))

    def to_dict(self) -> dict:
        return {
            "character_names": list(self.character_names),
            "enable_sfx": self.enable_sfx,
            "enable_haptics": self.enable_haptics,
        }
