"""Pydantic models for HTTP API requests and responses."""

from typing import Any, Dict, Optional, Union
from pydantic import BaseModel, Field

from redirection.models.status import DatabaseStatusEnum, ResultEnum, UpgradeAction


class DatabaseUpgradeRequest(BaseModel):
    """POST /api/v1.0/database/upgrade payload.

    Runs one stage of the active upgrade (starting a run if needed).

    Example:
        {
            "upgrade": "skip"
        }
    """

    upgrade: Optional[UpgradeAction] = Field(
        None,
        description="Operator action: stop the run, skip the current stage or retry it",
        examples=["stop", "skip", "retry"],
    )


class StatusPayload(BaseModel):
    """Database upgrade status returned to pollers.

    Optional fields are omitted from the wire payload, never sent as null.

    Example (stage in progress):
        {
            "status": "need-update",
            "inProgress": true,
            "current": "1.0",
            "next": "2.4",
            "time": 1700000000.123,
            "complete": 8.3,
            "result": "ok",
            "reason": "Add titles to redirects"
        }
    """

    status: DatabaseStatusEnum = Field(..., description="Derived upgrade status")
    inProgress: bool = Field(..., description="True while a stage is active")
    current: Optional[str] = Field(None, description="Stored schema version, '-' if none")
    next: Optional[str] = Field(None, description="Target schema version")
    time: Optional[float] = Field(None, description="Volatile generation timestamp")
    api: Optional[Dict[str, Any]] = Field(None, description="API descriptor for the UI")
    complete: Optional[Union[int, float]] = Field(
        None, description="Percentage complete (0-100), exactly 100 once finished"
    )
    result: Optional[ResultEnum] = Field(None, description="Outcome of the last stage")
    reason: Optional[str] = Field(None, description="Description of the last stage outcome")
    debug: Optional[Any] = Field(None, description="Schema snapshot attached to errors")

    def to_json(self) -> Dict[str, Any]:
        """Wire form: enums as strings, absent fields dropped."""
        return self.model_dump(mode="json", exclude_none=True)
