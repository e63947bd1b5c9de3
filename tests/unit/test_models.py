"""Unit tests for the record, outcome and run-state models."""

import pytest

from redirection.models.state import Outcome, Running, StatusRecord
from redirection.models.status import ResultEnum, UpgradeMode
from redirection.utils.versioning import is_newer, is_older


@pytest.mark.unit
class TestStatusRecord:
    """Persisted record serialisation."""

    def test_false_stage_loads_as_none(self):
        record = StatusRecord(**{"stage": False, "stages": ["a"], "mode": "install"})

        assert record.stage is None
        assert record.mode == UpgradeMode.INSTALL

    def test_to_option_writes_false(self):
        record = StatusRecord(stage=None, stages=["a", "b"])

        assert record.to_option() == {"stage": False, "stages": ["a", "b"], "mode": "upgrade"}

    def test_to_option_keeps_stage(self):
        record = StatusRecord(stage="b", stages=["a", "b"], mode=UpgradeMode.UPGRADE)
        assert record.to_option()["stage"] == "b"


@pytest.mark.unit
class TestOutcome:
    """Explicit outcome constructors."""

    def test_ok(self):
        outcome = Outcome.ok("done")
        assert outcome.result == ResultEnum.OK
        assert outcome.debug is None
        assert not outcome.is_error

    def test_error(self):
        outcome = Outcome.error("failed", {"t": "CREATE TABLE t"})
        assert outcome.is_error
        assert outcome.debug == {"t": "CREATE TABLE t"}


@pytest.mark.unit
class TestRunning:
    """Progress arithmetic."""

    def test_first_stage_is_zero(self):
        state = Running(mode=UpgradeMode.UPGRADE, stages=["a", "b"], stage="a")
        assert state.complete == 0.0
        assert state.in_progress

    def test_drained(self):
        state = Running(mode=UpgradeMode.UPGRADE, stages=["a", "b"], stage=None)
        assert state.index is None
        assert not state.in_progress
        assert state.complete == 0.0

    def test_never_reaches_100_while_running(self):
        stages = [f"s{i}" for i in range(7)]
        values = [Running(mode=UpgradeMode.UPGRADE, stages=stages, stage=s).complete for s in stages]

        assert values == sorted(values)
        assert max(values) < 100

    def test_large_plan_last_stage_capped_below_100(self):
        # Last stage of a long plan is within rounding distance of 100
        stages = [f"s{i}" for i in range(2000)]
        state = Running(mode=UpgradeMode.UPGRADE, stages=stages, stage=stages[-1])

        assert state.in_progress
        assert state.complete == 99.9
        assert state.complete < 100

    @pytest.mark.parametrize("count", [10000, 100000])
    def test_capped_for_any_plan_size(self, count):
        stages = [f"s{i}" for i in range(count)]
        state = Running(mode=UpgradeMode.UPGRADE, stages=stages, stage=stages[-1])

        assert state.complete == 99.9


@pytest.mark.unit
class TestVersioning:
    """Version comparison helpers."""

    def test_is_older(self):
        assert is_older("", "2.4")
        assert is_older("1.0", "2.4")
        assert is_older("2.3.3", "2.4")
        assert not is_older("2.4", "2.4")
        assert not is_older("2.10", "2.4")

    def test_is_newer(self):
        assert is_newer("2.1.16", "2.0.1")
        assert not is_newer("2.2", "2.2")
        assert is_newer("1.0", "")
