from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class LogModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False
    sample_every: int = 1000  # log one query out of N when debug is on
    record_results: bool = False

    @field_validator("sample_every")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("sample_every must be >= 1")
        return v


# ----------------- INDEXES ---------------------


class IndexSTRTreeModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["str_rtree"] = "str_rtree"
    node_capacity: int = 16

    @field_validator("node_capacity")
    @classmethod
    def _fanout(cls, v: int) -> int:
        if v < 2:
            raise ValueError(f"node_capacity must be >= 2, got {v}")
        return v


class IndexBruteForceModel(BaseModel):
    """Linear scan; reference results and tiny inputs."""

    model_config = ConfigDict(extra="forbid")
    kind: Literal["brute_force"] = "brute_force"


IndexUnion = Annotated[
    IndexSTRTreeModel | IndexBruteForceModel,
    Field(discriminator="kind"),
]


# ----------------- QUERIES ---------------------


class QueryModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    # "traversal": first hit in tree order; "lowest_id": stable across rebuilds
    tie_break: Literal["traversal", "lowest_id"] = "traversal"
    workers: int = 1
    chunk_size: int = 4096

    @field_validator("workers", "chunk_size")
    def _at_least_one(cls, v: int, info: ValidationInfo) -> int:
        if v < 1:
            raise ValueError(f"{info.field_name} must be >= 1")
        return v


# ------------------------------------------------------------------


class EngineModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str = "nearseg"
    run_id: str = "local"
    index: IndexUnion = Field(default_factory=IndexSTRTreeModel)
    query: QueryModel = QueryModel()
    log: LogModel = LogModel()
