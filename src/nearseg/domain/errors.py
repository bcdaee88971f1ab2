# domain/errors.py


class NearSegError(Exception):
    """Base class for errors raised by nearseg."""


class MalformedInputError(NearSegError, ValueError):
    """Flat input whose length is not a multiple of its record size."""

    def __init__(self, what: str, length: int, group: int, message: str | None = None):
        super().__init__(message or f"{what} length {length} is not a multiple of {group}")
        self.what, self.length, self.group = what, length, group


class NonFiniteCoordinateError(NearSegError, ValueError):
    """NaN or infinity in segment or query input."""

    def __init__(self, what: str, position: int):
        super().__init__(f"non-finite value in {what} record {position}")
        self.what, self.position = what, position


class CoordinateRangeError(NearSegError, ValueError):
    """Finite coordinate too large for squared distances to stay finite."""

    def __init__(self, what: str, position: int, limit: float):
        super().__init__(f"coordinate in {what} record {position} exceeds +/-{limit:g}")
        self.what, self.position, self.limit = what, position, limit


class EmptyIndexError(NearSegError, LookupError):
    """Nearest query against an index holding no segments."""

    def __init__(self, points: int = 0):
        super().__init__(f"no candidate segments for {points} query point(s): index is empty")
        self.points = points


class UnsupportedGeometryError(NearSegError, ValueError):
    def __init__(self, kind: object, position: int):
        super().__init__(f"unexpected geometry type {kind!r} at feature {position}")
        self.kind, self.position = kind, position
