from dataclasses import dataclass


# Core geometry types shared by the index and the query engine
@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Segment:
    start: Point
    end: Point
    seg_id: float  # opaque, returned verbatim

    @property
    def is_degenerate(self) -> bool:
        return self.start == self.end

    @property
    def bbox(self) -> tuple[float, float, float, float]:
        a, b = self.start, self.end
        return (min(a.x, b.x), min(a.y, b.y), max(a.x, b.x), max(a.y, b.y))


@dataclass(frozen=True)
class QueryResult:
    seg_id: float
    distance: float  # unsquared, >= 0
