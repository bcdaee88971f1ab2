# runtime/registries.py
from collections.abc import Callable
from typing import Any

import numpy as np

from nearseg.app.protocols import SpatialIndex, TieBreak
from nearseg.config.models import IndexBruteForceModel, IndexSTRTreeModel, IndexUnion
from nearseg.index.brute_force import BruteForceIndex
from nearseg.index.str_rtree import SegmentRTree

IndexFactory = Callable[[IndexUnion, np.ndarray, np.ndarray, dict[str, Any]], SpatialIndex]

_index_registry: dict[str, IndexFactory] = {}


# ------------------- Index registries ---------------------------


def register_index(kind: str):
    def deco(fn: IndexFactory):
        _index_registry[kind] = fn
        return fn

    return deco


def make_index(
    cfg: IndexUnion, coords: np.ndarray, ids: np.ndarray, *, tie_break: TieBreak = "traversal"
) -> SpatialIndex:
    try:
        factory = _index_registry[cfg.kind]
    except KeyError:
        raise ValueError(f"Unknown index kind {cfg.kind!r}") from None
    return factory(cfg, coords, ids, {"tie_break": tie_break})


@register_index("str_rtree")
def _make_str_rtree(cfg: IndexSTRTreeModel, coords, ids, deps):
    return SegmentRTree(coords, ids, node_capacity=cfg.node_capacity, tie_break=deps["tie_break"])


@register_index("brute_force")
def _make_brute_force(cfg: IndexBruteForceModel, coords, ids, deps):
    return BruteForceIndex(coords, ids, tie_break=deps["tie_break"])
