"""Tests for the step pipeline driver."""
from homeport.core.errors import FailureKind, ProxyConfigError
from homeport.core.pipeline import Pipeline, Step, StepResult, StepStatus


def append(value):
    return lambda state: StepResult.ok(state + [value])


def test_runs_steps_in_order():
    outcome = Pipeline([Step("one", append(1)), Step("two", append(2))]).run([])

    assert outcome.succeeded
    assert outcome.state == [1, 2]
    assert outcome.completed == ["one", "two"]
    assert outcome.exit_code == 0


def test_failure_short_circuits():
    calls = []

    def never(state):
        calls.append(state)
        return StepResult.ok(state)

    outcome = Pipeline([
        Step("one", append(1)),
        Step("bad", lambda s: StepResult.failed(FailureKind.DNS_RECORD, "create failed")),
        Step("never", never),
    ]).run([])

    assert outcome.status == StepStatus.FAILED
    assert outcome.failed_step == "bad"
    assert outcome.state == [1]
    assert outcome.exit_code == 5
    assert calls == []


def test_raised_error_becomes_failed_result():
    def boom(state):
        raise ProxyConfigError("compose up failed")

    outcome = Pipeline([Step("proxy", boom)]).run([])

    assert outcome.kind == FailureKind.PROXY
    assert outcome.message == "compose up failed"
    assert outcome.exit_code == 7


def test_stop_exits_cleanly():
    outcome = Pipeline([
        Step("select", lambda s: StepResult.stop("nothing selected")),
        Step("after", append(1)),
    ]).run([])

    assert outcome.status == StepStatus.STOPPED
    assert outcome.exit_code == 0
    assert outcome.message == "nothing selected"
