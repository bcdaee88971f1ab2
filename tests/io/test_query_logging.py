import io
import json
import logging
import math

import numpy as np
import pytest

from nearseg.domain.entities.geography import QueryResult
from nearseg.domain.errors import EmptyIndexError
from nearseg.index.str_rtree import SegmentRTree
from nearseg.io.query_logging import QueryLogging, _default_json_logger
from nearseg.io.recorder import JsonlSink, MemorySink, Recorder, ResultRecord
from nearseg.services.query_engine import NearestQueryEngine


def test_batch_logs_and_sampled_queries(caplog):
    logger = logging.getLogger("nearseg.tests.batch")
    sink = MemorySink()
    hooks = QueryLogging(
        run_id="r-1", debug=True, sample_every=2, logger=logger, recorder=Recorder(sink)
    )
    engine = NearestQueryEngine(SegmentRTree([[0.0, 0.0, 10.0, 0.0]], [1.0]), hooks=hooks)

    with caplog.at_level(logging.DEBUG, logger="nearseg.tests.batch"):
        engine.nearest_array(np.column_stack((np.arange(5.0), np.full(5, 2.0))))

    msgs = [r.getMessage() for r in caplog.records]
    assert msgs[0] == "batch_start" and msgs[-1] == "batch_end"
    queries = [r for r in caplog.records if r.getMessage() == "query"]
    assert [r.extra["seq"] for r in queries] == [0, 2, 4]
    assert all(r.extra["run_id"] == "r-1" for r in caplog.records)

    assert [ev.seq for ev in sink.records] == [0, 1, 2, 3, 4]
    assert sink.records[0] == ResultRecord("r-1", 0, 1.0, 2.0)


def test_errors_are_logged(caplog):
    logger = logging.getLogger("nearseg.tests.error")
    hooks = QueryLogging(logger=logger)
    engine = NearestQueryEngine(SegmentRTree.bulk_load([]), hooks=hooks)
    with caplog.at_level(logging.INFO, logger="nearseg.tests.error"):
        with pytest.raises(EmptyIndexError):
            engine.nearest_array([[0.0, 0.0]])
    (rec,) = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert rec.getMessage() == "query_error"
    assert rec.extra["reason"] == "EmptyIndexError"


def test_json_formatter_writes_one_object_per_line(capsys):
    logger = _default_json_logger(name="nearseg.tests.json", level="INFO")
    QueryLogging(run_id="j", logger=logger).build_end(
        kind="str_rtree", segments=3, nodes=1, depth=1, wall_ms=0.5
    )
    line = capsys.readouterr().out.strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["msg"] == "build_end"
    assert payload["run_id"] == "j" and payload["segments"] == 3
    assert payload["level"] == "INFO" and isinstance(payload["ts"], float)
    assert payload["thread"]


def test_jsonl_sink(tmp_path):
    path = tmp_path / "results.jsonl"
    with path.open("w") as fp:
        Recorder(JsonlSink(fp)).emit(ResultRecord("x", 3, 7.0, QueryResult(7.0, 1.5).distance))
    assert json.loads(path.read_text()) == {
        "run_id": "x",
        "seq": 3,
        "seg_id": 7.0,
        "distance": 1.5,
    }


def test_jsonl_sink_writes_null_for_infinite_distance():
    fp = io.StringIO()
    JsonlSink(fp, flush=True).write(ResultRecord("x", 0, 7.0, math.inf))
    assert json.loads(fp.getvalue()) == {"run_id": "x", "seq": 0, "seg_id": 7.0, "distance": None}


def test_memory_sink_orders_threaded_results_by_seq():
    sink = MemorySink()
    hooks = QueryLogging(logger=logging.getLogger("nearseg.tests.mem"), recorder=Recorder(sink))
    segs = np.column_stack((np.arange(40.0), np.zeros(40), np.arange(40.0) + 0.5, np.zeros(40)))
    engine = NearestQueryEngine(
        SegmentRTree(segs, np.arange(40.0)), hooks=hooks, workers=4, chunk_size=3
    )
    xy = np.column_stack((np.arange(40.0) + 0.25, np.ones(40)))
    out = engine.nearest_array(xy)
    assert sorted(r.seq for r in sink.records) == list(range(40))
    assert [(r.seg_id, r.distance) for r in sink.results()] == [tuple(row) for row in out]


def test_build_error_is_its_own_event(caplog):
    logger = logging.getLogger("nearseg.tests.build_error")
    hooks = QueryLogging(run_id="be", logger=logger)
    with caplog.at_level(logging.INFO, logger="nearseg.tests.build_error"):
        hooks.build_error(reason="CoordinateRangeError", error="too big", segments=2)
    (rec,) = caplog.records
    assert rec.getMessage() == "build_error" and rec.levelno == logging.ERROR
    assert rec.extra == {
        "run_id": "be",
        "reason": "CoordinateRangeError",
        "error": "too big",
        "segments": 2,
    }
