# nearseg/app/build.py
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import numpy as np

from nearseg.config.models import EngineModel
from nearseg.domain.entities.geography import Segment
from nearseg.domain.geometry import segments_to_arrays
from nearseg.io.query_logging import QueryLogging  # JSON logs
from nearseg.io.recorder import JsonlSink, Recorder
from nearseg.runtime.registries import make_index
from nearseg.services.hooks import NoopHooks, QueryHooks
from nearseg.services.query_engine import NearestQueryEngine


@dataclass
class App:
    model: EngineModel
    hooks: QueryHooks
    recorder: Recorder | None = None


def build(
    cfg: EngineModel | Mapping | None = None,
    *,
    use_logging: bool = True,
    recorder: Recorder | None = None,
) -> App:
    # 0) Validate config
    if cfg is None:
        model = EngineModel()
    else:
        model = cfg if isinstance(cfg, EngineModel) else EngineModel.model_validate(cfg)

    # 1) Result recording (only meaningful with logging hooks)
    if recorder is None and model.log.record_results:
        recorder = Recorder(JsonlSink(flush=True))

    # 2) Hooks
    hooks = (
        QueryLogging(
            run_id=model.run_id,
            level=model.log.level,
            debug=model.log.debug,
            sample_every=model.log.sample_every,
            recorder=recorder,
        )
        if use_logging
        else NoopHooks()
    )
    return App(model, hooks, recorder)


def build_engine(app: App, coords: np.ndarray, ids: np.ndarray) -> NearestQueryEngine:
    """Bulk-load the configured index from packed arrays and wrap it in an engine."""
    model = app.model
    kind, n = model.index.kind, len(ids)
    t0 = time.perf_counter()
    app.hooks.build_start(kind=kind, segments=n)
    try:
        index = make_index(model.index, coords, ids, tie_break=model.query.tie_break)
    except ValueError as exc:
        app.hooks.build_error(reason=type(exc).__name__, error=str(exc), segments=n)
        raise
    app.hooks.build_end(
        kind=kind,
        segments=n,
        nodes=index.node_count,
        depth=index.depth,
        wall_ms=(time.perf_counter() - t0) * 1000,
    )
    return NearestQueryEngine(
        index,
        hooks=app.hooks,
        workers=model.query.workers,
        chunk_size=model.query.chunk_size,
    )


def index_segments(app: App, segments: Sequence[Segment]) -> NearestQueryEngine:
    coords, ids = segments_to_arrays(segments)
    return build_engine(app, coords, ids)
