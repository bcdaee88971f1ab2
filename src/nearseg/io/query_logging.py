# io/query_logging.py
import json
import logging
import sys

from nearseg.domain.entities.geography import QueryResult
from nearseg.io.recorder import Recorder, ResultRecord
from nearseg.services.hooks import NoopHooks


class _JsonFormatter(logging.Formatter):
    """One JSON object per line; worker thread names show up for threaded batches."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": round(record.created, 6),
            "level": record.levelname,
            "msg": record.getMessage(),
            "logger": record.name,
            "thread": record.threadName,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)
        return json.dumps(payload)


def _default_json_logger(name="nearseg", level="INFO", stream=None):
    logger = logging.getLogger(name)
    if not logger.handlers:
        h = logging.StreamHandler(stream or sys.stdout)
        h.setFormatter(_JsonFormatter())
        logger.addHandler(h)
        logger.setLevel(level)
    return logger


class QueryLogging(NoopHooks):
    """
    Structured logs for index builds and query batches, plus optional
    per-query result records.
    """

    def __init__(
        self,
        run_id: str = "local",
        level: str = "INFO",
        debug: bool = False,
        sample_every: int = 1000,
        logger: logging.Logger | None = None,
        recorder: Recorder | None = None,
    ):
        self.run_id, self.debug, self.sample_every = run_id, debug, max(1, sample_every)
        self.recorder = recorder
        self.log = logger or _default_json_logger(level=level)

    def _emit(self, level: str, msg: str, **extra):
        payload = {"run_id": self.run_id, **extra}
        self.log.log(getattr(logging, level), msg, extra={"extra": payload})

    # index lifecycle

    def build_start(self, *, kind: str, segments: int):
        self._emit("INFO", "build_start", kind=kind, segments=segments)

    def build_end(self, *, kind: str, segments: int, nodes: int, depth: int, wall_ms: float):
        self._emit(
            "INFO",
            "build_end",
            kind=kind,
            segments=segments,
            nodes=nodes,
            depth=depth,
            wall_ms=wall_ms,
        )

    def build_error(self, *, reason: str, **extra):
        self._emit("ERROR", "build_error", reason=reason, **extra)

    # query batches

    def batch_start(self, *, points: int, workers: int):
        self._emit("INFO", "batch_start", points=points, workers=workers)

    def batch_end(self, *, points: int, wall_ms: float):
        self._emit("INFO", "batch_end", points=points, wall_ms=wall_ms)

    def query(self, result: QueryResult, *, seq: int):
        if self.recorder:
            self.recorder.emit(ResultRecord(self.run_id, seq, result.seg_id, result.distance))
        if self.debug and (seq % self.sample_every) == 0:
            self._emit("DEBUG", "query", seq=seq, seg_id=result.seg_id, distance=result.distance)

    def error(self, *, reason: str, **extra):
        self._emit("ERROR", "query_error", reason=reason, **extra)
