"""Crash-resumable status of a database upgrade run."""

from typing import Any, Dict, List, Optional

from redirection.models.state import (
    Finished,
    NotRunning,
    Outcome,
    Running,
    RunState,
    StatusRecord,
)
from redirection.models.status import UpgradeMode
from redirection.services.option_store import OptionStore
from redirection.services.plan_provider import LatestDatabase
from redirection.services.status_reporter import build_status_payload
from redirection.utils.logging import service_logger
from redirection.utils.versioning import TARGET_DB_VERSION, is_older

DB_UPGRADE_STAGE = "database_stage"
PERMISSION_HINT = (
    "Insufficient database permissions detected. "
    "Please give your database user appropriate permissions."
)


class DatabaseStatus:
    """Tracks an upgrade run across independent requests.

    The run record lives in the ``database_stage`` option slot and is
    re-read on every call; it is never cached on the instance. Only the
    outcome of the stage executed during this request and the finished
    marker are held in memory, so build one instance per request.

    Lifecycle:
        start_upgrade/start_install → (set_ok|set_error → set_next_stage)* → finish
                      ↓
                 stop_update (any time, back to not running)
    """

    def __init__(
        self,
        store: OptionStore,
        schema: Optional[LatestDatabase] = None,
        target_version: str = TARGET_DB_VERSION,
        api: Optional[Dict[str, Any]] = None,
    ):
        """Initialize status engine.

        Args:
            store: Option store holding the run record and plugin settings
            schema: Schema collaborator used for error snapshots
            target_version: Schema version the plugin expects
            api: Optional API descriptor included in need-* payloads
        """
        self.logger = service_logger("database_status")
        self.store = store
        self.schema = schema or LatestDatabase()
        self.target_version = target_version
        self.api = api

        self._outcome: Optional[Outcome] = None
        self._finished: Optional[UpgradeMode] = None

    def start_upgrade(self, stages: List[str]) -> None:
        """Begin an upgrade of an existing schema."""
        self._start(UpgradeMode.UPGRADE, stages)

    def start_install(self, stages: List[str]) -> None:
        """Begin a fresh install."""
        self._start(UpgradeMode.INSTALL, stages)

    def stop_update(self) -> None:
        """Abandon the run; safe to call when nothing is running."""
        self._clear_record()
        self._finished = None
        self.logger.info("Database upgrade stopped")

    def set_stage(self, stage: Optional[str]) -> None:
        """Seek to a stage without checking it belongs to the plan.

        Debug/test helper, not part of the normal runner flow.
        """
        record = self._load_record() or StatusRecord()
        record.stage = stage
        self._save_record(record)

    def get_current_stage(self) -> Optional[str]:
        """Stage to run next, or None when not running or drained."""
        record = self._load_record()
        if record is None:
            return None
        return record.stage

    def set_next_stage(self) -> None:
        """Advance to the next stage; None after the last one."""
        record = self._load_record()
        if record is None or record.stage is None:
            self.logger.debug("set_next_stage ignored: no active stage")
            return

        stages = record.stages
        if record.stage in stages and stages.index(record.stage) < len(stages) - 1:
            next_stage = stages[stages.index(record.stage) + 1]
        else:
            next_stage = None

        self.logger.info(f"Stage {record.stage} done, next: {next_stage or 'version bump'}")
        self._save_record(record.model_copy(update={"stage": next_stage}))

    def set_ok(self, reason: str) -> None:
        """Attach a successful outcome to the current stage."""
        self._outcome = Outcome.ok(reason)

    def set_error(self, reason: str, db_error: Optional[str] = None) -> None:
        """Attach a failed outcome plus a snapshot of the expected schema.

        Never raises: a failing snapshot is logged and replaced by an empty one.

        Args:
            reason: Error description
            db_error: Last error reported by the database driver, if known
        """
        reason = reason.replace("\t", " ")
        if db_error and "command denied to user" in db_error:
            reason = f"{reason} - {PERMISSION_HINT}"

        self._outcome = Outcome.error(reason, self._schema_snapshot())
        self.logger.warning(
            f"Stage {self.get_current_stage()} failed: {reason}"
            + (f" (database: {db_error})" if db_error else "")
        )

    def is_error(self) -> bool:
        return self._outcome is not None and self._outcome.is_error

    def finish(self) -> None:
        """Close the run and report 100% until a new run starts."""
        record = self._load_record()
        if record is not None:
            mode = record.mode
        elif self._finished is not None:
            mode = self._finished
        elif self.needs_installing():
            mode = UpgradeMode.INSTALL
        else:
            mode = UpgradeMode.UPGRADE

        self._clear_record()
        self._finished = mode
        self.logger.info(f"Database {mode.value} finished")

    def get_state(self) -> RunState:
        """Run state variant derived from the persisted record."""
        if self._finished is not None:
            return Finished(mode=self._finished)

        record = self._load_record()
        if record is None:
            return NotRunning()
        return Running(mode=record.mode, stages=record.stages, stage=record.stage)

    def get_json(self, outcome: Optional[Outcome] = None) -> Dict[str, Any]:
        """Status payload; outcome overrides the one recorded by set_ok/set_error.

        An error outcome passed without debug gets the recorded error's
        snapshot, or a fresh one from the schema collaborator.
        """
        if outcome is None:
            outcome = self._outcome
        elif outcome.is_error and outcome.debug is None:
            if self._outcome is not None and self._outcome.is_error:
                debug = self._outcome.debug
            else:
                debug = self._schema_snapshot()
            outcome = outcome.model_copy(update={"debug": debug})

        return build_status_payload(
            self.get_state(),
            self.get_stored_version(),
            self.target_version,
            outcome=outcome,
            api=self.api,
        )

    def get_stored_version(self) -> str:
        return self.store.get_plugin_options()["database"] or ""

    def needs_updating(self) -> bool:
        return is_older(self.get_stored_version(), self.target_version)

    def needs_installing(self) -> bool:
        return self.get_stored_version() == ""

    def _start(self, mode: UpgradeMode, stages: List[str]) -> None:
        record = StatusRecord(stage=stages[0] if stages else None, stages=list(stages), mode=mode)
        self._save_record(record)
        self._outcome = None
        self._finished = None
        self.logger.info(f"Database {mode.value} started with {len(stages)} stage(s)")

    def _schema_snapshot(self) -> Any:
        try:
            return self.schema.get_table_schema()
        except Exception as e:
            self.logger.error(f"Failed to capture table schema: {e}", exc_info=True)
            return {}

    def _load_record(self) -> Optional[StatusRecord]:
        data = self.store.get(DB_UPGRADE_STAGE)
        if not data:
            return None
        return StatusRecord(**data)

    def _save_record(self, record: StatusRecord) -> None:
        self.store.set(DB_UPGRADE_STAGE, record.to_option())

    def _clear_record(self) -> None:
        self.store.delete(DB_UPGRADE_STAGE)
