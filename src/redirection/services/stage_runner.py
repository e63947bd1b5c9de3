"""Drives a database upgrade one stage per request."""

from typing import Any, Callable, Dict, Mapping, Optional

from redirection.models.state import Running
from redirection.models.status import UpgradeAction
from redirection.services.database_status import DatabaseStatus
from redirection.services.option_store import OptionStore
from redirection.services.plan_provider import LatestDatabase, MigrationPlanProvider
from redirection.utils.logging import service_logger

StageHandler = Callable[[], None]
STAGE_HANDLERS: Dict[str, StageHandler] = {}


class StageExecutionError(Exception):
    """Raised by a stage body; carries the database driver error if any."""

    def __init__(self, message: str, db_error: Optional[str] = None):
        super().__init__(message)
        self.db_error = db_error


class StageRunner:
    """Applies the next pending stage of the active run.

    Each call to :meth:`run` is one request cycle:
    stop/skip → start run if idle → execute current stage → record outcome
    → advance → bump version and finish once the plan is drained.
    """

    def __init__(
        self,
        store: OptionStore,
        provider: Optional[MigrationPlanProvider] = None,
        handlers: Optional[Mapping[str, StageHandler]] = None,
        schema: Optional[LatestDatabase] = None,
        api: Optional[Dict[str, Any]] = None,
    ):
        """Initialize stage runner.

        Args:
            store: Option store shared with the status engine
            provider: Plan provider (default: redirection upgrade table)
            handlers: Stage id → stage body (default: registered with @register_stage)
            schema: Schema collaborator for error snapshots
            api: Optional API descriptor forwarded to status payloads
        """
        self.logger = service_logger("stage_runner")
        self.store = store
        self.provider = provider or MigrationPlanProvider(store)
        self.handlers: Dict[str, StageHandler] = dict(
            STAGE_HANDLERS if handlers is None else handlers
        )
        self.schema = schema
        self.api = api

    def new_status(self) -> DatabaseStatus:
        """Fresh engine for one request."""
        return DatabaseStatus(
            self.store,
            schema=self.schema,
            target_version=self.provider.target_version,
            api=self.api,
        )

    def run(self, action: Optional[UpgradeAction] = None) -> Dict[str, Any]:
        """Run one stage cycle.

        Args:
            action: Operator action (stop, skip, retry) or None

        Returns:
            Status payload after the cycle
        """
        status = self.new_status()
        target = self.provider.target_version

        if action == UpgradeAction.STOP:
            status.stop_update()
            return status.get_json()

        if not status.needs_updating() and not status.needs_installing():
            status.set_error(f"Your database does not need updating to {target}.")
            return status.get_json()

        if action == UpgradeAction.SKIP:
            self.logger.info(f"Skipping stage {status.get_current_stage()}")
            status.set_next_stage()

        if not isinstance(status.get_state(), Running):
            self._start(status)

        stage = status.get_current_stage()
        if stage is not None:
            self._perform_stage(status, stage)
            if not status.is_error():
                status.set_next_stage()

        if not status.is_error() and status.get_current_stage() is None:
            self.store.set_plugin_options({"database": target})
            status.finish()
            self.logger.info(f"Database now at version {target}")

        return status.get_json()

    def _start(self, status: DatabaseStatus) -> None:
        stages = self.provider.get_upgrades()
        if status.needs_installing():
            status.start_install(stages)
        else:
            status.start_upgrade(stages)

    def _perform_stage(self, status: DatabaseStatus, stage: str) -> None:
        handler = self.handlers.get(stage)
        if handler is None:
            status.set_error(f"No stage found for upgrade {stage}")
            return

        self.logger.info(f"Running stage {stage}")
        try:
            handler()
        except StageExecutionError as e:
            status.set_error(str(e), db_error=e.db_error)
        except Exception as e:
            self.logger.error(f"Stage {stage} raised: {e}", exc_info=True)
            status.set_error(str(e))
        else:
            status.set_ok(self.provider.get_reason(stage))


def register_stage(stage: str) -> Callable[[StageHandler], StageHandler]:
    """Decorator registering the host's body for a stage id."""

    def decorator(func: StageHandler) -> StageHandler:
        STAGE_HANDLERS[stage] = func
        return func

    return decorator
