"""Persisted upgrade record, transient outcome and run-state variants."""

from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, field_validator

from redirection.models.status import ResultEnum, UpgradeMode


class StatusRecord(BaseModel):
    """Upgrade record stored in the ``database_stage`` option slot.

    Written wholesale on every mutating call. On disk the absence of a
    current stage is stored as ``false``:

        {"stage": "add_title_201", "stages": ["add_title_201", ...], "mode": "upgrade"}
    """

    stage: Optional[str] = Field(None, description="Stage currently being applied")
    stages: List[str] = Field(default_factory=list, description="Plan fixed at run start")
    mode: UpgradeMode = Field(UpgradeMode.UPGRADE, description="Entry point of the run")

    @field_validator("stage", mode="before")
    @classmethod
    def parse_false_stage(cls, v):
        """Map the stored ``false`` marker to None."""
        if v is False or v == "":
            return None
        return v

    def to_option(self) -> Dict[str, Any]:
        """Serialise for the option store."""
        return {
            "stage": self.stage if self.stage is not None else False,
            "stages": list(self.stages),
            "mode": self.mode.value,
        }


class Outcome(BaseModel):
    """Result attached to the in-flight stage.

    Built explicitly with :meth:`ok` or :meth:`error`; only error outcomes
    carry a debug snapshot.
    """

    result: ResultEnum
    reason: str
    debug: Optional[Any] = None

    @classmethod
    def ok(cls, reason: str) -> "Outcome":
        return cls(result=ResultEnum.OK, reason=reason)

    @classmethod
    def error(cls, reason: str, debug: Any = None) -> "Outcome":
        return cls(result=ResultEnum.ERROR, reason=reason, debug=debug)

    @property
    def is_error(self) -> bool:
        return self.result == ResultEnum.ERROR


class NotRunning(BaseModel):
    """No run record, or the record was cleared by stop/finish."""

    kind: Literal["not-running"] = "not-running"


class Running(BaseModel):
    """A run record exists.

    ``stage`` is None once every stage has been applied (only the version
    bump remains) or when the plan was empty.
    """

    kind: Literal["running"] = "running"
    mode: UpgradeMode
    stages: List[str] = Field(default_factory=list)
    stage: Optional[str] = None

    @property
    def index(self) -> Optional[int]:
        """Position of the current stage in the plan, None if absent."""
        if self.stage is None or self.stage not in self.stages:
            return None
        return self.stages.index(self.stage)

    @property
    def in_progress(self) -> bool:
        return self.stage is not None

    @property
    def complete(self) -> float:
        """Percentage of stages applied before the current one.

        Capped at 99.9: only a finished run reports 100.
        """
        index = self.index
        if index is None:
            return 0.0
        return min(round(index / len(self.stages) * 100, 1), 99.9)


class Finished(BaseModel):
    """Terminal display state produced by ``finish()``."""

    kind: Literal["finished"] = "finished"
    mode: UpgradeMode


RunState = Union[NotRunning, Running, Finished]
