"""BDD step definitions for the aggregation context lifecycle.

Every step drives the async API through ``run_async`` so that each unit of
work runs start to finish inside one event loop.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest
from pytest_bdd import given, parsers, then, when

from perfkeeper.adapters.storage.in_memory import InMemoryKeyValueStore
from perfkeeper.core.codec import decode_record
from perfkeeper.core.config import RecorderConfig
from perfkeeper.core.models import Record, RecordKind
from perfkeeper.core.query import Query
from perfkeeper.core.recorder import Recorder


@dataclass
class ContextScenario:
    """Shared state between steps in an aggregation context scenario."""

    store: InMemoryKeyValueStore = field(default_factory=InMemoryKeyValueStore)
    config: RecorderConfig = field(default_factory=RecorderConfig)
    recorder: Recorder | None = None
    error: Exception | None = None


def run_async(coro: Any) -> Any:
    """Run a coroutine synchronously."""
    return asyncio.run(coro)


async def stored(state: ContextScenario, kind: RecordKind) -> list[Record]:
    assert state.recorder is not None
    keys, values = await state.recorder.scanner.fetch(Query().pattern(kind))
    return [decode_record(k, v) for k, v in zip(keys, values, strict=True)]


@pytest.fixture
def state() -> ContextScenario:
    """Fresh scenario state for each test."""
    return ContextScenario()


@given("a recorder backed by an in-memory store")
def given_recorder(state: ContextScenario) -> None:
    state.recorder = Recorder(state.store, state.config)


@given("recording is disabled")
def given_disabled(state: ContextScenario) -> None:
    state.config = RecorderConfig(enabled=False)
    state.recorder = Recorder(state.store, state.config)


@when(
    parsers.parse(
        'a request unit of work merges controller "{controller}" and later status {status:d}'
    )
)
def when_two_call_sites(state: ContextScenario, controller: str, status: int) -> None:
    assert state.recorder is not None

    async def unit_of_work() -> None:
        async with state.recorder.recording(RecordKind.REQUEST) as ctx:  # type: ignore[union-attr]
            ctx.merge(controller=controller, action="index")
            ctx.merge(status=status, view_runtime=4.5)

    run_async(unit_of_work())


@when(
    parsers.parse(
        "a request unit of work merges status {first:d} and later status {second:d}"
    )
)
def when_status_replaced(state: ContextScenario, first: int, second: int) -> None:
    assert state.recorder is not None

    async def unit_of_work() -> None:
        async with state.recorder.recording(RecordKind.REQUEST) as ctx:  # type: ignore[union-attr]
            ctx.merge(controller="HomeController", status=first)
            ctx.merge(status=second)

    run_async(unit_of_work())


@when(
    parsers.parse('a request unit of work for controller "{controller}" raises an error')
)
def when_unit_of_work_fails(state: ContextScenario, controller: str) -> None:
    assert state.recorder is not None

    async def unit_of_work() -> None:
        async with state.recorder.recording(  # type: ignore[union-attr]
            RecordKind.REQUEST, controller=controller
        ):
            raise RuntimeError("handler failed")

    try:
        run_async(unit_of_work())
    except RuntimeError as e:
        state.error = e


@when("an api unit of work marks the default recorder as ignored")
def when_api_suppresses_default(state: ContextScenario) -> None:
    assert state.recorder is not None
    recorder = state.recorder

    async def unit_of_work() -> None:
        async with recorder.recording(RecordKind.REQUEST) as ctx:
            ctx.suppress()
            ctx.merge(path="/api/items", method="GET", status=200, endpoint_run=2.0)
            await ctx.flush(recorder, recorder="api", kind=RecordKind.API)

    run_async(unit_of_work())


@when(parsers.parse('a custom unit of work for tag "{tag}" is flushed twice'))
def when_flushed_twice(state: ContextScenario, tag: str) -> None:
    assert state.recorder is not None
    recorder = state.recorder

    async def unit_of_work() -> None:
        async with recorder.recording(RecordKind.CUSTOM, tag_name=tag) as ctx:
            await ctx.flush(recorder)

    run_async(unit_of_work())


@then("the error reaches the caller")
def then_error_propagates(state: ContextScenario) -> None:
    assert isinstance(state.error, RuntimeError)
    assert str(state.error) == "handler failed"


@then(parsers.parse("exactly {count:d} {kind} record is stored"))
@then(parsers.parse("exactly {count:d} {kind} records are stored"))
def then_record_count(state: ContextScenario, count: int, kind: str) -> None:
    records = run_async(stored(state, RecordKind(kind)))
    assert len(records) == count


@then(parsers.parse('the stored request has {name} "{value}"'))
def then_stored_request_field(state: ContextScenario, name: str, value: str) -> None:
    [record] = run_async(stored(state, RecordKind.REQUEST))
    assert str(getattr(record, name)) == value
