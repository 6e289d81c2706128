"""
Lane descriptors shown in the dashboard selector
"""
from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class Lane:
    """A named task bucket with its display glyph"""
    name: str
    glyph: str

    def to_dict(self) -> dict:
        return {"name": self.name, "glyph": self.glyph}


LANES: Tuple[Lane, ...] = (
    Lane("Café Ops", "🧑‍🍳"),
    Lane("NestMap", "⚙️"),
    Lane("Financial", "💸"),
    Lane("Creative", "🎭"),
    Lane("Life", "🧍"),
    Lane("Partner Tasks", "🧠"),
    Lane("Recovery", "🛑"),
)


def find_lane(name: str) -> Optional[Lane]:
    """Look up a predefined lane; free-text lanes return None"""
    for lane in LANES:
        if lane.name == name:
            return lane
    return None
