# io/recorder.py
import json
import math
import sys
import threading
from dataclasses import asdict, dataclass
from typing import Protocol

from nearseg.domain.entities.geography import QueryResult


@dataclass(frozen=True)
class ResultRecord:
    run_id: str
    seq: int  # position of the query point in its batch
    seg_id: float
    distance: float


class Sink(Protocol):
    def write(self, rec: ResultRecord) -> None: ...


class JsonlSink:
    """One result per line. Non-finite distances become null so every line stays strict JSON."""

    def __init__(self, fp=None, *, flush: bool = False):
        self.fp = fp if fp is not None else sys.stdout
        self.flush = flush

    def write(self, rec: ResultRecord) -> None:
        row = asdict(rec)
        if not math.isfinite(row["distance"]):
            row["distance"] = None
        self.fp.write(json.dumps(row, allow_nan=False) + "\n")
        if self.flush:
            self.fp.flush()


class MemorySink:
    def __init__(self):
        self.records: list[ResultRecord] = []

    def write(self, rec: ResultRecord) -> None:
        self.records.append(rec)

    def results(self) -> list[QueryResult]:
        # worker threads can interleave chunks; seq restores batch order
        return [
            QueryResult(r.seg_id, r.distance) for r in sorted(self.records, key=lambda r: r.seq)
        ]


class Recorder:
    """Fan records out to sinks. Safe to call from query worker threads."""

    def __init__(self, *sinks: Sink):
        self.sinks = sinks or (JsonlSink(),)
        self._lock = threading.Lock()

    def emit(self, rec: ResultRecord) -> None:
        with self._lock:
            for s in self.sinks:
                s.write(rec)
