"""Projection of the upgrade run state into the status payload."""

import time
from typing import Any, Dict, Optional

from redirection.api.models import StatusPayload
from redirection.models.state import Finished, NotRunning, Outcome, Running, RunState
from redirection.models.status import DatabaseStatusEnum, UpgradeMode

_NEEDS_WORK = (DatabaseStatusEnum.NEED_INSTALL, DatabaseStatusEnum.NEED_UPDATE)


def derive_status(
    state: RunState, stored_version: str, target_version: str
) -> DatabaseStatusEnum:
    """Status string for a run state; first matching rule wins."""
    if isinstance(state, NotRunning):
        if stored_version == target_version:
            return DatabaseStatusEnum.OK
        if not stored_version:
            return DatabaseStatusEnum.NEED_INSTALL
        return DatabaseStatusEnum.NEED_UPDATE

    if isinstance(state, Finished):
        if state.mode == UpgradeMode.INSTALL:
            return DatabaseStatusEnum.FINISH_INSTALL
        return DatabaseStatusEnum.FINISH_UPDATE

    if state.mode == UpgradeMode.INSTALL:
        return DatabaseStatusEnum.NEED_INSTALL
    return DatabaseStatusEnum.NEED_UPDATE


def build_status_payload(
    state: RunState,
    stored_version: str,
    target_version: str,
    outcome: Optional[Outcome] = None,
    api: Optional[Dict[str, Any]] = None,
    now: Optional[float] = None,
) -> Dict[str, Any]:
    """Build the wire payload for GET /database/status.

    Pure: reads its arguments only and never touches persisted state.

    Args:
        state: Run state derived from the persisted record
        stored_version: Schema version currently stored ("" if never installed)
        target_version: Schema version the plugin expects
        outcome: Outcome attached to the current stage, if any
        api: Optional API descriptor forwarded to the admin UI
        now: Timestamp for the volatile ``time`` field (default: time.time())

    Returns:
        Payload dict with absent fields omitted
    """
    status = derive_status(state, stored_version, target_version)
    in_progress = isinstance(state, Running) and state.in_progress
    fields: Dict[str, Any] = {"status": status, "inProgress": in_progress}

    if status in _NEEDS_WORK:
        fields["current"] = stored_version or "-"
        fields["next"] = target_version
        fields["time"] = time.time() if now is None else now
        if api is not None:
            fields["api"] = api

    if in_progress:
        fields["complete"] = state.complete
        if outcome is not None:
            fields["result"] = outcome.result
            fields["reason"] = outcome.reason
            if outcome.is_error:
                fields["debug"] = outcome.debug if outcome.debug is not None else {}
    elif isinstance(state, Finished):
        fields["complete"] = 100
        if outcome is not None:
            fields["reason"] = outcome.reason
    elif outcome is not None and outcome.is_error:
        # Request rejected outside a run (e.g. nothing to upgrade)
        fields["result"] = outcome.result
        fields["reason"] = outcome.reason
        fields["debug"] = outcome.debug if outcome.debug is not None else {}

    return StatusPayload(**fields).to_json()
