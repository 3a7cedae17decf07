import asyncio

import pytest

from attraviso.utils.async_utils import first_of, run_workers


def _const(value, log, name):
    async def attempt():
        log.append(name)
        return value
    return attempt


def _boom(log, name, exc=RuntimeError):
    async def attempt():
        log.append(name)
        raise exc(name)
    return attempt


def test_first_success_short_circuits():
    log = []
    result = asyncio.run(first_of([_const(None, log, "a"), _const("b", log, "b"), _const("c", log, "c")]))
    assert result == "b"
    assert log == ["a", "b"]


def test_caught_failures_fall_through():
    log, errors = [], []
    result = asyncio.run(first_of(
        [_boom(log, "a"), _const("b", log, "b")],
        on_error=lambda i, e: errors.append((i, str(e))),
    ))
    assert result == "b"
    assert errors == [(0, "a")]


def test_exhausted_returns_none_or_reraises_last():
    log = []
    assert asyncio.run(first_of([_boom(log, "a"), _const(None, log, "b")])) is None
    with pytest.raises(RuntimeError, match="second"):
        asyncio.run(first_of([_boom(log, "first"), _boom(log, "second")], reraise=True))


def test_uncaught_types_propagate_immediately():
    log = []
    with pytest.raises(KeyError):
        asyncio.run(first_of([_boom(log, "a", KeyError), _const("b", log, "b")], catch=(ValueError,)))
    assert log == ["a"]


def test_attempts_are_pulled_lazily():
    built = []

    def attempts():
        for name in ("a", "b", "c"):
            built.append(name)
            yield _const("hit" if name == "b" else None, [], name)

    assert asyncio.run(first_of(attempts())) == "hit"
    assert built == ["a", "b"]


def test_run_workers_bounds_concurrency():
    state = {"active": 0, "peak": 0, "done": []}

    async def work(item):
        state["active"] += 1
        state["peak"] = max(state["peak"], state["active"])
        await asyncio.sleep(0.01)
        state["active"] -= 1
        state["done"].append(item)

    asyncio.run(run_workers(range(10), work, concurrency=3))
    assert state["peak"] == 3
    assert sorted(state["done"]) == list(range(10))


def test_run_workers_with_no_items():
    async def work(item):
        raise AssertionError("should not run")

    asyncio.run(run_workers([], work, concurrency=4))


def test_workers_take_no_items_once_stopped():
    seen = []
    stop = asyncio.Event()

    async def handle(item):
        seen.append(item)
        if item == 2:
            stop.set()

    asyncio.run(run_workers(range(10), handle, concurrency=1, stop=stop))
    assert seen == [0, 1, 2]
