import pytest

from ringio.ops import OpRuntime, RegisteredOp


def test_has_result_false_for_unknown_key():
    assert OpRuntime().has_result(7) is False


def test_result_wakes_registered_waker():
    ops = OpRuntime()
    woken = []
    ops.update_waker(1, lambda: woken.append(1))
    ops.update_result(1, "op", 12)
    assert woken == [1]
    assert ops.has_result(1)


def test_remove_returns_completed_entry():
    ops = OpRuntime()
    ops.update_result(3, "the-op", 5)
    entry = ops.remove(3)
    assert entry.op == "the-op"
    assert entry.outcome() == 5
    assert 3 not in ops


def test_remove_unknown_key_raises():
    with pytest.raises(KeyError):
        OpRuntime().remove(9)


def test_waker_only_fires_once():
    ops = OpRuntime()
    woken = []
    ops.update_waker(1, lambda: woken.append(1))
    ops.update_result(1, None, 0)
    ops.update_result(1, None, 0)
    assert woken == [1]


def test_result_for_cancelled_op_is_discarded():
    ops = OpRuntime()
    ops.cancel(4)
    assert not ops.has_result(4)
    ops.update_result(4, None, 8)
    assert 4 not in ops
    assert len(ops) == 0


def test_outcome_raises_stored_exception():
    entry = RegisteredOp(result=ConnectionResetError("reset"), completed=True)
    with pytest.raises(ConnectionResetError):
        entry.outcome()


def test_outcome_before_completion_raises():
    with pytest.raises(RuntimeError):
        RegisteredOp().outcome()


def test_update_waker_replaces_previous():
    ops = OpRuntime()
    woken = []
    ops.update_waker(2, lambda: woken.append("first"))
    ops.update_waker(2, lambda: woken.append("second"))
    ops.update_result(2, None, 1)
    assert woken == ["second"]