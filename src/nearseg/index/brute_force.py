from collections.abc import Sequence

from nearseg.app.protocols import TIE_BREAKS, TieBreak
from nearseg.domain.entities.geography import Segment
from nearseg.domain.errors import EmptyIndexError
from nearseg.domain.geometry import (
    frozen_segment_arrays,
    pick_nearest,
    segments_dist2,
    segments_to_arrays,
)


class BruteForceIndex:
    """Exhaustive scan over every segment. Reference for the tree indexes."""

    kind = "brute_force"

    def __init__(self, coords, ids, *, tie_break: TieBreak = "traversal"):
        if tie_break not in TIE_BREAKS:
            raise ValueError(f"Unknown tie_break {tie_break!r}")
        self.tie_break = tie_break
        self._coords, self._ids = frozen_segment_arrays(coords, ids)

    @classmethod
    def bulk_load(cls, segments: Sequence[Segment], *, tie_break: TieBreak = "traversal"):
        coords, ids = segments_to_arrays(segments)
        return cls(coords, ids, tie_break=tie_break)

    def __len__(self) -> int:
        return len(self._ids)

    @property
    def depth(self) -> int:
        return 1 if len(self._ids) else 0

    @property
    def node_count(self) -> int:
        return self.depth

    def nearest(self, px: float, py: float) -> tuple[float, float]:
        if not len(self._ids):
            raise EmptyIndexError(1)
        d2 = segments_dist2(px, py, self._coords)
        return pick_nearest(d2, self._ids, lowest_id=self.tie_break == "lowest_id")
