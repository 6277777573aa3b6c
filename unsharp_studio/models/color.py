from __future__ import annotations
import re
from dataclasses import dataclass
from typing import ClassVar, Tuple

from .errors import InvalidColor

_HEX_COLOR = re.compile(r"#?([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})")


@dataclass(frozen=True)
class Color:
    """
    Opaque RGB colour used to paint the stroke.
    Always carries full opacity; components are 0-255.
    """
    r: int
    g: int
    b: int
    a: int = 255

    BLACK: ClassVar["Color"]

    def __post_init__(self):
        for name in ("r", "g", "b", "a"):
            value = getattr(self, name)
            if not isinstance(value, int) or not 0 <= value <= 255:
                raise InvalidColor(f"Colour component {name}={value!r} is outside 0-255")

    @classmethod
    def parse(cls, text: str) -> "Color":
        """
        Parse '#RRGGBB' (the leading '#' is optional).
        Anything else raises InvalidColor; nothing is partially applied.
        """
        if not isinstance(text, str):
            raise InvalidColor(f"Colour must be a string, got {type(text).__name__}")
        match = _HEX_COLOR.fullmatch(text.strip())
        if match is None:
            raise InvalidColor(f"Malformed colour {text!r}, expected '#RRGGBB'")
        r, g, b = (int(group, 16) for group in match.groups())
        return cls(r, g, b)

    def as_rgba(self) -> Tuple[int, int, int, int]:
        return self.r, self.g, self.b, self.a

    def to_hex(self) -> str:
        return f"#{self.r:02X}{self.g:02X}{self.b:02X}"


Color.BLACK = Color(0, 0, 0)
