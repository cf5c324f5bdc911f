from __future__ import annotations

import asyncio

import pytest

from projected import (
    Dispatcher,
    ManualScheduler,
    ProjectionConfigError,
    UpstreamFetchError,
)


def run_async(coro):
    return asyncio.run(coro)


class _Upstream:
    """Sync batch fetch recording every call."""

    def __init__(self, rows: dict[str, dict], *, fail_on: str | None = None) -> None:
        self.rows = rows
        self.fail_on = fail_on
        self.calls: list[list[str]] = []

    def __call__(self, keys: list[str]):
        self.calls.append(list(keys))
        if self.fail_on is not None and self.fail_on in keys:
            raise RuntimeError(f"upstream failed for {self.fail_on}")
        return [self.rows[k] for k in keys if k in self.rows]


def _rows(*keys: str) -> dict[str, dict]:
    return {k: {"id": k, "title": f"title{k}"} for k in keys}


def test_requests_within_one_window_share_one_batch():
    async def scenario() -> None:
        upstream = _Upstream(_rows("1", "2", "3", "4"))
        scheduler = ManualScheduler()
        dispatcher = Dispatcher(upstream, lambda row: row["id"], scheduler=scheduler)

        first = dispatcher.resolve(["1", "2"])
        second = dispatcher.resolve(["2", "3"])
        third = dispatcher.resolve(["4", "1"])

        assert upstream.calls == []
        assert dispatcher.pending_keys == ("1", "2", "3", "4")
        assert dispatcher.timer_armed

        scheduler.advance(dispatcher.delay_s)

        assert upstream.calls == [["1", "2", "3", "4"]]
        assert (await first) == {"1": upstream.rows["1"], "2": upstream.rows["2"]}
        assert set(await second) == {"2", "3"}
        assert set(await third) == {"4", "1"}
        assert dispatcher.active_waiters == 0
        assert dispatcher.stats.batches == 1

    run_async(scenario())


def test_queue_over_chunk_size_dispatches_immediately():
    async def scenario() -> None:
        upstream = _Upstream(_rows("a", "b", "c"))
        scheduler = ManualScheduler()
        dispatcher = Dispatcher(
            upstream,
            lambda row: row["id"],
            max_chunk_size=2,
            scheduler=scheduler,
        )

        future = dispatcher.resolve(["a", "b", "c"])

        assert upstream.calls == [["a", "b"]]
        assert dispatcher.pending_keys == ("c",)
        assert not future.done()

        scheduler.advance(dispatcher.delay_s)

        assert upstream.calls == [["a", "b"], ["c"]]
        assert set(await future) == {"a", "b", "c"}

    run_async(scenario())


def test_chunk_count_is_ceil_of_queue_over_chunk_size():
    async def scenario() -> None:
        keys = [str(i) for i in range(5)]
        upstream = _Upstream(_rows(*keys))
        scheduler = ManualScheduler()
        dispatcher = Dispatcher(
            upstream,
            lambda row: row["id"],
            max_chunk_size=2,
            scheduler=scheduler,
        )

        future = dispatcher.resolve(keys)
        # size-triggered chunks go out before the timer flushes the remainder
        assert upstream.calls == [["0", "1"], ["2", "3"]]

        scheduler.advance(dispatcher.delay_s)

        assert upstream.calls == [["0", "1"], ["2", "3"], ["4"]]
        assert all(len(call) <= 2 for call in upstream.calls)
        assert len(await future) == 5

    run_async(scenario())


def test_empty_key_list_resolves_without_touching_queue():
    async def scenario() -> None:
        upstream = _Upstream({})
        scheduler = ManualScheduler()
        dispatcher = Dispatcher(upstream, lambda row: row["id"], scheduler=scheduler)

        future = dispatcher.resolve([])

        assert future.done()
        assert await future == {}
        assert not dispatcher.timer_armed
        assert scheduler.pending_count == 0

    run_async(scenario())


def test_missing_and_out_of_order_items_are_matched_by_key():
    async def scenario() -> None:
        def upstream(keys: list[str]):
            return [None, {"id": "3"}, {"id": "1"}]

        scheduler = ManualScheduler()
        dispatcher = Dispatcher(upstream, lambda row: row["id"], scheduler=scheduler)

        future = dispatcher.resolve(["1", "2", "3"])
        scheduler.advance(dispatcher.delay_s)

        assert await future == {"1": {"id": "1"}, "2": None, "3": {"id": "3"}}

    run_async(scenario())


def test_chunk_failure_only_fails_waiters_covering_it():
    async def scenario() -> None:
        upstream = _Upstream(_rows("a", "c"), fail_on="bad")
        scheduler = ManualScheduler()
        dispatcher = Dispatcher(
            upstream,
            lambda row: row["id"],
            max_chunk_size=2,
            scheduler=scheduler,
        )

        failing = dispatcher.resolve(["a", "bad"])
        healthy = dispatcher.resolve(["c"])

        assert upstream.calls == [["a", "bad"]]
        with pytest.raises(RuntimeError, match="upstream failed for bad"):
            await failing

        scheduler.advance(dispatcher.delay_s)

        assert await healthy == {"c": upstream.rows["c"]}
        assert dispatcher.stats.failed_batches == 1

    run_async(scenario())


def test_waiter_fails_before_its_other_chunks_settle():
    async def scenario() -> None:
        upstream = _Upstream(_rows("a", "b", "c"), fail_on="a")
        scheduler = ManualScheduler()
        dispatcher = Dispatcher(
            upstream,
            lambda row: row["id"],
            max_chunk_size=2,
            scheduler=scheduler,
        )

        future = dispatcher.resolve(["a", "b", "c"])

        assert future.done()
        assert dispatcher.active_waiters == 0
        with pytest.raises(RuntimeError):
            await future

        # the remaining key is still fetched once its window closes
        scheduler.advance(dispatcher.delay_s)
        assert upstream.calls == [["a", "b"], ["c"]]

    run_async(scenario())


def test_parallel_async_chunks_complete_in_any_order():
    async def scenario() -> None:
        delays = [0.05, 0.01, 0.01]
        calls: list[list[str]] = []

        async def upstream(keys: list[str]):
            calls.append(list(keys))
            await asyncio.sleep(delays.pop(0))
            return [{"id": k} for k in keys]

        dispatcher = Dispatcher(upstream, lambda row: row["id"], delay_s=0.02, max_chunk_size=2)

        first = dispatcher.resolve(["4", "3", "5"])
        second = dispatcher.resolve(["2", "3", "1"])

        assert dispatcher.inflight_batches == 2
        res1, res2 = await asyncio.gather(first, second)

        assert set(res1) == {"4", "3", "5"}
        assert set(res2) == {"2", "3", "1"}
        # "3" was re-queued by the second waiter and goes out with "1" on the timer
        assert calls == [["4", "3"], ["5", "2"], ["3", "1"]]

    run_async(scenario())


def test_async_upstream_failure_propagates_original_exception():
    async def scenario() -> None:
        class BackendDown(Exception):
            pass

        async def upstream(keys: list[str]):
            raise BackendDown("down")

        dispatcher = Dispatcher(upstream, lambda row: row["id"], delay_s=0.001)

        with pytest.raises(BackendDown):
            await dispatcher.resolve(["x"])

    run_async(scenario())


def test_non_iterable_payload_raises_upstream_fetch_error():
    async def scenario() -> None:
        scheduler = ManualScheduler()
        dispatcher = Dispatcher(lambda keys: None, lambda row: row["id"], scheduler=scheduler)

        future = dispatcher.resolve(["x"])
        scheduler.advance(dispatcher.delay_s)

        with pytest.raises(UpstreamFetchError):
            await future

    run_async(scenario())


def test_flush_dispatches_everything_now():
    async def scenario() -> None:
        upstream = _Upstream(_rows("a", "b", "c"))
        scheduler = ManualScheduler()
        dispatcher = Dispatcher(
            upstream,
            lambda row: row["id"],
            max_chunk_size=2,
            scheduler=scheduler,
        )

        future = dispatcher.resolve(["a", "b"])
        assert dispatcher.flush() == 1
        assert not dispatcher.timer_armed
        assert set(await future) == {"a", "b"}
        assert dispatcher.flush() == 0

    run_async(scenario())


def test_fetch_now_bypasses_batch_window():
    async def scenario() -> None:
        upstream = _Upstream(_rows("a"))
        scheduler = ManualScheduler()
        dispatcher = Dispatcher(upstream, lambda row: row["id"], scheduler=scheduler)

        result = await dispatcher.fetch_now(["a", "b", "a"])

        assert result == {"a": upstream.rows["a"], "b": None}
        assert upstream.calls == [["a", "b"]]
        assert scheduler.pending_count == 0

    run_async(scenario())


def test_cancelled_waiter_is_dropped_on_fan_out():
    async def scenario() -> None:
        upstream = _Upstream(_rows("a"))
        scheduler = ManualScheduler()
        dispatcher = Dispatcher(upstream, lambda row: row["id"], scheduler=scheduler)

        abandoned = dispatcher.resolve(["a"])
        kept = dispatcher.resolve(["a"])
        abandoned.cancel()

        scheduler.advance(dispatcher.delay_s)

        assert abandoned.cancelled()
        assert await kept == {"a": upstream.rows["a"]}
        assert dispatcher.active_waiters == 0

    run_async(scenario())


@pytest.mark.parametrize(
    "kwargs",
    [{"delay_s": -1}, {"max_chunk_size": 0}],
)
def test_invalid_batch_options_raise(kwargs):
    with pytest.raises(ProjectionConfigError):
        Dispatcher(lambda keys: [], lambda row: row, **kwargs)


def test_timer_left_on_a_closed_loop_is_replaced():
    upstream = _Upstream(_rows("a", "b"))
    dispatcher = Dispatcher(upstream, lambda row: row["id"], delay_s=0.01)

    async def abandon() -> None:
        dispatcher.resolve(["a"])

    run_async(abandon())
    assert dispatcher.timer_armed
    assert dispatcher.pending_keys == ("a",)

    async def scenario() -> dict:
        return await asyncio.wait_for(dispatcher.resolve(["b"]), 1.0)

    assert run_async(scenario()) == {"b": upstream.rows["b"]}
    assert upstream.calls == [["b"]]
    assert dispatcher.active_waiters == 0
