import pytest

from quantalogic_codriver import (
    Deferred,
    Driver,
    DriverState,
    DriverStateError,
    ProtocolError,
    co,
    driven,
    rejected,
    resolved,
)


class Boom(Exception):
    pass


class ManualOperation:
    """A duck-typed pending operation that only settles when told to."""

    def __init__(self):
        self.on_success = None
        self.on_fault = None

    def then(self, on_success, on_fault):
        self.on_success = on_success
        self.on_fault = on_fault


def test_routine_without_yields_finishes_after_one_resumption():
    def routine():
        return 42
        yield

    driver = Driver(routine)
    result = driver.start()
    assert result.result() == 42
    assert driver.resumptions == 1
    assert driver.state is DriverState.FINISHED


def test_three_operations_are_summed():
    def routine():
        a = yield resolved(1)
        b = yield resolved(2)
        c = yield resolved(3)
        return a + b + c

    driver = Driver(routine)
    assert driver.start().result() == 6
    assert driver.resumptions == 4


@pytest.mark.parametrize("n", [0, 1, 5])
def test_n_operations_take_n_plus_one_resumptions(n):
    received = []

    def routine():
        for i in range(n):
            received.append((yield resolved(i * 10)))
        return "done"

    driver = Driver(routine)
    assert driver.start().result() == "done"
    assert driver.resumptions == n + 1
    assert received == [i * 10 for i in range(n)]


def test_only_one_operation_outstanding_at_a_time():
    ops = []

    def make():
        d = Deferred()
        ops.append(d)
        return d

    def routine():
        a = yield make()
        b = yield make()
        return a + b

    driver = Driver(routine)
    result = driver.start()
    assert len(ops) == 1
    assert driver.resumptions == 1
    assert driver.pending is ops[0]
    assert driver.state is DriverState.WAITING
    assert not result.settled

    ops[0].resolve(2)
    assert len(ops) == 2
    assert driver.resumptions == 2
    assert driver.pending is ops[1]
    assert not result.settled

    ops[1].resolve(3)
    assert result.result() == 5
    assert driver.resumptions == 3
    assert driver.pending is None


def test_recovered_fault_does_not_reach_result():
    def routine():
        total = yield resolved(1)
        try:
            yield rejected(Boom("To fail, or to not fail."))
        except Boom:
            total += 100
        total += (yield resolved(3))
        return total

    assert co(routine).result() == 104


def test_fault_surfaces_at_suspension_point():
    seen = []
    error = Boom("inside")

    def routine():
        try:
            yield rejected(error)
        except Boom as e:
            seen.append(e)
        return "recovered"

    assert co(routine).result() == "recovered"
    assert seen == [error]


def test_unhandled_fault_fails_result_and_stops():
    after = []
    op = Deferred()
    error = Boom("E")

    def routine():
        yield op
        after.append("resumed")
        yield resolved(1)

    driver = Driver(routine)
    result = driver.start()
    op.reject(error)
    assert result.exception() is error
    with pytest.raises(Boom):
        result.result()
    assert after == []
    assert driver.resumptions == 2
    assert driver.state is DriverState.FAILED


def test_routine_raising_on_value_path_fails_result():
    def routine():
        value = yield resolved(0)
        return 1 / value

    result = co(routine)
    assert isinstance(result.exception(), ZeroDivisionError)


def test_plain_value_yield_is_a_protocol_fault():
    cleaned_up = []

    def routine():
        try:
            yield 5
            yield resolved(1)
        finally:
            cleaned_up.append(True)

    driver = Driver(routine)
    result = driver.start()
    fault = result.exception()
    assert isinstance(fault, ProtocolError)
    assert fault.item == 5
    assert "non-awaitable" in str(fault)
    assert driver.resumptions == 1
    assert cleaned_up == [True]


def test_list_of_operations_is_a_protocol_fault():
    def routine():
        yield [resolved(1), resolved(2)]

    assert isinstance(co(routine).exception(), ProtocolError)


def test_bare_yield_is_a_protocol_fault():
    def routine():
        yield

    fault = co(routine).exception()
    assert isinstance(fault, ProtocolError)
    assert fault.item is None
    assert fault.has_item


def test_factory_errors_fail_the_result():
    def factory():
        raise Boom("no routine")

    driver = Driver(factory)
    assert isinstance(driver.start().exception(), Boom)
    assert driver.resumptions == 0


def test_factory_returning_non_routine_is_a_protocol_fault():
    assert isinstance(co(lambda: 5).exception(), ProtocolError)


def test_factory_returning_coroutine_is_rejected():
    async def not_a_generator():
        return 1

    assert isinstance(co(not_a_generator).exception(), ProtocolError)


def test_driver_cannot_start_twice():
    def routine():
        return 1
        yield

    driver = Driver(routine)
    driver.start()
    with pytest.raises(DriverStateError):
        driver.start()


def test_factory_arguments_are_forwarded():
    def routine(a, b=0):
        c = yield resolved(a)
        return c + b

    assert co(routine, 2, b=5).result() == 7


def test_duck_typed_operation_settles_later():
    op = ManualOperation()

    def routine():
        try:
            yield op
        except Boom:
            return "handled"

    result = co(routine)
    assert not result.settled
    op.on_fault(Boom())
    assert result.result() == "handled"


def test_stray_settlement_is_reported_to_provider():
    op = ManualOperation()

    def routine():
        value = yield op
        return value

    result = co(routine)
    op.on_success(1)
    assert result.result() == 1
    with pytest.raises(ProtocolError):
        op.on_success(2)


def test_long_chain_of_settled_operations_stays_flat():
    def routine():
        total = 0
        for i in range(10000):
            total += yield resolved(i)
        return total

    assert co(routine).result() == sum(range(10000))


def test_driven_routines_compose():
    @driven
    def child(x):
        y = yield resolved(x * 2)
        return y + 1

    @driven
    def parent():
        a = yield child(1)
        b = yield child(2)
        return [a, b]

    assert parent().result() == [3, 5]


def test_child_fault_is_injected_into_parent():
    @driven
    def child():
        yield rejected(Boom("child"))

    @driven
    def parent():
        try:
            yield child()
        except Boom as e:
            return f"parent saw {e}"

    assert parent().result() == "parent saw child"


def test_result_has_many_observers():
    op = Deferred()

    def routine():
        return (yield op)

    result = co(routine)
    seen = []
    result.then(seen.append)
    result.then(lambda v: seen.append(v * 2))
    op.resolve(4)
    result.then(lambda v: seen.append(v * 3))
    assert seen == [4, 8, 12]


def test_failing_consumer_does_not_block_other_waiters():
    op = Deferred()

    def routine():
        return (yield op)

    first = co(routine)
    second = co(routine)
    first.then(lambda v: 1 / 0)
    op.resolve(7)
    assert first.result() == 7
    assert second.settled
    assert second.result() == 7


def test_second_callback_inside_then_keeps_first_outcome():
    class SettlesTwice:
        def then(self, on_success, on_fault):
            on_success(1)
            on_success(2)

    def routine():
        return (yield SettlesTwice())

    driver = Driver(routine)
    assert driver.start().result() == 1
    assert driver.state is DriverState.FINISHED


def test_item_inspection_error_fails_result():
    cleaned_up = []

    class RaisingThen:
        @property
        def then(self):
            raise ValueError("boom")

    def routine():
        try:
            yield RaisingThen()
        finally:
            cleaned_up.append(True)

    driver = Driver(routine)
    result = driver.start()
    assert isinstance(result.exception(), ValueError)
    assert driver.state is DriverState.FAILED
    assert cleaned_up == [True]
