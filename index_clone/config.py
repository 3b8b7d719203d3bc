from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MONGO_SCHEMES = ("mongodb://", "mongodb+srv://")


class ConflictPolicy(str, Enum):
    """What to do when the destination already has an index with the source name."""

    ERROR = "error"
    SKIP = "skip"
    OVERWRITE = "overwrite"


class FailurePolicy(str, Enum):
    FAIL_FAST = "fail_fast"
    BEST_EFFORT = "best_effort"


class CloneConfig(BaseModel):
    """Settings for one run, built once by the CLI and handed to the engine."""

    model_config = ConfigDict(frozen=True)

    source_uri: str = Field(description="URI of the database to copy indexes from")
    dest_uri: str = Field(description="URI of the database to copy indexes to")
    background: bool = Field(default=True, description="build created indexes in background mode")
    conflict_policy: ConflictPolicy = ConflictPolicy.ERROR
    failure_policy: FailurePolicy = FailurePolicy.FAIL_FAST
    timeout_ms: int = Field(default=10_000, gt=0, description="per network call timeout")
    deadline_seconds: Optional[float] = Field(default=None, gt=0, description="overall run deadline")

    @field_validator("source_uri", "dest_uri")
    @classmethod
    def check_uri(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("connection string must not be empty")
        if not v.startswith(MONGO_SCHEMES):
            raise ValueError(f"connection string must start with one of {', '.join(MONGO_SCHEMES)}")
        return v
