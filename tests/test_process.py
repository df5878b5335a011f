"""Ordered bounded-concurrency processing.

These tests pin the core guarantees: input order is preserved regardless of
completion order, no more than ``concurrency`` units run at once, input is
pulled lazily, and the first timeout or batch failure aborts everything.
"""

from __future__ import annotations

import asyncio
import random

import pytest

from castor.errors import ConfigurationError, RemoteAnalyticsError, RowTimeoutError
from castor.invoke import invoke_batch
from castor.models import TaskKind
from castor.process import process_rows
from tests.helpers import LatencyClient

pytestmark = pytest.mark.unit


async def _collect(agen) -> list:
    return [item async for item in agen]


def _unit_for(client: LatencyClient):
    async def unit(text: str) -> str:
        result = await invoke_batch(client, TaskKind.LANGUAGE_DETECTION, [text], [None])
        return result.results[0].name

    return unit


@pytest.mark.asyncio
@pytest.mark.parametrize("seed", [0, 1, 2])
async def test_output_order_matches_input_under_latency_variance(seed: int) -> None:
    rng = random.Random(seed)
    markers = [f"row-{i}" for i in range(30)]
    client = LatencyClient(delays={m: rng.uniform(0, 0.02) for m in markers})

    out = await _collect(
        process_rows(markers, _unit_for(client), concurrency=5, timeout_s=5)
    )

    assert out == markers


@pytest.mark.asyncio
async def test_reverse_completion_order_still_emits_in_input_order() -> None:
    markers = ["a", "b", "c", "d"]
    client = LatencyClient(delays={"a": 0.04, "b": 0.03, "c": 0.02, "d": 0.01})

    out = await _collect(
        process_rows(markers, _unit_for(client), concurrency=4, timeout_s=5)
    )

    assert out == markers


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [1, 2, 8])
async def test_concurrency_never_exceeds_limit(limit: int) -> None:
    rng = random.Random(limit)
    markers = [f"row-{i}" for i in range(20)]
    client = LatencyClient(delays={m: rng.uniform(0.001, 0.01) for m in markers})

    out = await _collect(
        process_rows(markers, _unit_for(client), concurrency=limit, timeout_s=5)
    )

    assert out == markers
    assert client.peak <= limit
    assert client.peak == min(limit, len(markers))
    assert client.calls == len(markers)


@pytest.mark.asyncio
async def test_unit_exceeding_timeout_fails_the_whole_call() -> None:
    client = LatencyClient(delays={"slow": 10.0})

    with pytest.raises(RowTimeoutError) as exc:
        await _collect(
            process_rows(
                ["fast", "slow", "fast2"], _unit_for(client), concurrency=3, timeout_s=0.05
            )
        )

    assert exc.value.row_idx == 1
    assert exc.value.timeout_s == 0.05
    assert isinstance(exc.value, TimeoutError)


@pytest.mark.asyncio
async def test_timeout_raised_inside_unit_is_not_mistaken_for_deadline() -> None:
    async def unit(row: int) -> int:
        raise TimeoutError("socket read timed out")

    with pytest.raises(TimeoutError) as exc:
        await _collect(process_rows([1], unit, concurrency=1, timeout_s=5))

    assert not isinstance(exc.value, RowTimeoutError)


@pytest.mark.asyncio
async def test_first_failure_cancels_in_flight_units() -> None:
    client = LatencyClient(
        delays={"hang": 10.0, "boom": 0.0},
        errors={"boom": RemoteAnalyticsError("Unauthorized", status_code=401)},
    )

    with pytest.raises(RemoteAnalyticsError, match="Unauthorized") as exc:
        await asyncio.wait_for(
            _collect(
                process_rows(
                    ["hang", "boom"], _unit_for(client), concurrency=2, timeout_s=30
                )
            ),
            timeout=5,
        )

    assert exc.value.row_idx == 1
    assert client.cancelled == ["hang"]
    assert client.active == 0


@pytest.mark.asyncio
async def test_rows_after_a_failure_are_never_pulled() -> None:
    pulled: list[int] = []

    def rows():
        for i in range(100):
            pulled.append(i)
            yield i

    async def unit(row: int) -> int:
        if row == 3:
            raise RemoteAnalyticsError("down")
        return row

    with pytest.raises(RemoteAnalyticsError):
        await _collect(process_rows(rows(), unit, concurrency=2, timeout_s=5))

    assert len(pulled) <= 5


@pytest.mark.asyncio
async def test_input_is_consumed_lazily() -> None:
    pulled: list[int] = []
    gate = asyncio.Event()

    def rows():
        for i in range(10):
            pulled.append(i)
            yield i

    async def unit(row: int) -> int:
        await gate.wait()
        return row * 10

    agen = process_rows(rows(), unit, concurrency=3, timeout_s=5)
    first = asyncio.create_task(anext(agen))
    await asyncio.sleep(0.01)

    assert pulled == [0, 1, 2]
    assert not first.done()

    gate.set()
    assert await first == 0
    rest = await _collect(agen)
    assert rest == [10, 20, 30, 40, 50, 60, 70, 80, 90]


@pytest.mark.asyncio
async def test_async_iterable_input() -> None:
    async def rows():
        for i in range(5):
            await asyncio.sleep(0)
            yield i

    async def unit(row: int) -> int:
        return row + 1

    out = await _collect(process_rows(rows(), unit, concurrency=2, timeout_s=5))
    assert out == [1, 2, 3, 4, 5]


@pytest.mark.asyncio
async def test_empty_input_yields_nothing() -> None:
    async def unit(row: int) -> int:  # pragma: no cover - never called
        return row

    assert await _collect(process_rows([], unit, concurrency=4, timeout_s=5)) == []


@pytest.mark.asyncio
async def test_early_close_cancels_outstanding_units() -> None:
    cancelled: list[int] = []

    async def unit(row: int) -> int:
        if row == 0:
            return row
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.append(row)
            raise
        return row  # pragma: no cover

    agen = process_rows(range(4), unit, concurrency=3, timeout_s=30)
    assert await anext(agen) == 0
    await agen.aclose()

    # Row 3 was never pulled, so only the two in-flight units are cancelled.
    assert sorted(cancelled) == [1, 2]


@pytest.mark.asyncio
@pytest.mark.parametrize(("concurrency", "timeout_s"), [(0, 1.0), (2, 0)])
async def test_invalid_limits_are_rejected(concurrency: int, timeout_s: float) -> None:
    async def unit(row: int) -> int:  # pragma: no cover - never called
        return row

    with pytest.raises(ConfigurationError):
        await _collect(
            process_rows([1], unit, concurrency=concurrency, timeout_s=timeout_s)
        )
