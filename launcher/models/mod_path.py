from dataclasses import dataclass
from typing import Iterator, Tuple

SEPARATOR = "."


@dataclass(frozen=True, order=True)
class ModPath:
    """Address of a mod in the tree: root mod name, then sub-mod names."""

    segments: Tuple[str, ...] = ()

    @classmethod
    def new(cls, name: str) -> "ModPath":
        return cls((name,))

    @classmethod
    def parse(cls, text: str) -> "ModPath":
        return cls(tuple(segment.lower() for segment in text.split(SEPARATOR)))

    def is_top(self) -> bool:
        return len(self.segments) == 1

    def top(self) -> str:
        return self.segments[0] if self.segments else ""

    @property
    def name(self) -> str:
        return self.segments[-1] if self.segments else ""

    @property
    def parent(self) -> "ModPath":
        return ModPath(self.segments[:-1])

    def child(self, name: str) -> "ModPath":
        return ModPath(self.segments + (name,))

    def __iter__(self) -> Iterator[str]:
        return iter(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    def __bool__(self) -> bool:
        return bool(self.segments)

    def __str__(self) -> str:
        return SEPARATOR.join(self.segments)
