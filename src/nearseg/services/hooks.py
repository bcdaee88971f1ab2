# services/hooks.py
from typing import Protocol

from nearseg.domain.entities.geography import QueryResult


class QueryHooks(Protocol):
    def build_start(self, *, kind, segments): ...
    def build_end(self, *, kind, segments, nodes, depth, wall_ms): ...
    def build_error(self, *, reason: str, **kw): ...
    def batch_start(self, *, points, workers): ...
    def batch_end(self, *, points, wall_ms): ...
    def query(self, result: QueryResult, *, seq): ...
    def error(self, *, reason: str, **kw): ...


class NoopHooks:
    def build_start(self, **_):
        pass

    def build_end(self, **_):
        pass

    def build_error(self, **_):
        pass

    def batch_start(self, **_):
        pass

    def batch_end(self, **_):
        pass

    def query(self, *_, **__):
        pass

    def error(self, **_):
        pass
