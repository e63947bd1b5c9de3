"""Status enums for the database upgrader."""

from enum import Enum


class UpgradeMode(str, Enum):
    """Entry point used to start a run."""

    UPGRADE = "upgrade"
    INSTALL = "install"


class DatabaseStatusEnum(str, Enum):
    """Status string reported to the admin UI.

    Derivation order:
    not running  → ok | need-install | need-update (from stored version)
    finished     → finish-install | finish-update
    running      → need-install | need-update (from run mode)
    """

    OK = "ok"
    NEED_INSTALL = "need-install"
    NEED_UPDATE = "need-update"
    FINISH_INSTALL = "finish-install"
    FINISH_UPDATE = "finish-update"


class ResultEnum(str, Enum):
    """Outcome of the most recently executed stage."""

    OK = "ok"
    ERROR = "error"


class UpgradeAction(str, Enum):
    """Operator action sent with a stage request."""

    STOP = "stop"
    SKIP = "skip"
    RETRY = "retry"
