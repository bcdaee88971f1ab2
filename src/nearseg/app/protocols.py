from typing import Literal, Protocol, runtime_checkable

TieBreak = Literal["traversal", "lowest_id"]
TIE_BREAKS: tuple[str, ...] = ("traversal", "lowest_id")


@runtime_checkable
class SpatialIndex(Protocol):
    """
    Responsibilities:
      • Hold an immutable set of segments (coordinates + opaque ids).
      • Answer exact nearest-segment queries for a point.
    Distances cross this seam squared; the engine takes the square root.
    """

    kind: str
    tie_break: TieBreak

    @property
    def depth(self) -> int: ...
    @property
    def node_count(self) -> int: ...

    def __len__(self) -> int: ...
    def nearest(self, px: float, py: float) -> tuple[float, float]:
        """Return (seg_id, squared distance). Raise EmptyIndexError when empty."""
