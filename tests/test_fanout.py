from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from carcare.exceptions import CarCareStoreError
from carcare.fanout import NotificationFanoutDispatcher
from carcare.models.notification import DeliveryOutcome, NotificationPayload
from carcare.pruning import TokenPruner
from carcare.store.memory import InMemoryStore

if TYPE_CHECKING:
    from conftest import RecordingTransport

NOT_REGISTERED = "messaging/registration-token-not-registered"
INVALID = "messaging/invalid-registration-token"
UNAVAILABLE = "messaging/server-unavailable"


class _FailingDeleteStore(InMemoryStore):
    def __init__(self, data: dict[str, Any], failing: set[str]) -> None:
        super().__init__(data)
        self._failing = failing

    async def delete(self, path: str) -> None:
        if path in self._failing:
            raise CarCareStoreError("delete refused", path=path, status_code=401)
        await super().delete(path)


_PAYLOAD = NotificationPayload(title="CarCare", body="Hello")


@pytest.mark.asyncio
async def test_empty_batch_does_not_call_transport(transport: RecordingTransport) -> None:
    dispatcher = NotificationFanoutDispatcher(transport, TokenPruner(InMemoryStore()))

    outcomes = await dispatcher.dispatch([], _PAYLOAD, [])

    assert outcomes == []
    assert transport.calls == []


@pytest.mark.asyncio
async def test_full_batch_sent_in_one_transport_call(transport: RecordingTransport) -> None:
    dispatcher = NotificationFanoutDispatcher(transport, TokenPruner(InMemoryStore()))

    outcomes = await dispatcher.dispatch(["t1", "t2", "t3"], _PAYLOAD, [None, None, None])

    assert len(transport.calls) == 1
    assert transport.calls[0][0] == ["t1", "t2", "t3"]
    assert all(outcome.success for outcome in outcomes)


@pytest.mark.asyncio
async def test_permanent_failures_pruned_and_others_untouched(transport: RecordingTransport) -> None:
    store = InMemoryStore(
        {"messages": {"1": {"to": {"k1": "tok-good", "k2": "tok-dead", "k3": "tok-flaky", "k4": "tok-bad"}}}}
    )
    transport.errors.update({"tok-dead": NOT_REGISTERED, "tok-flaky": UNAVAILABLE, "tok-bad": INVALID})
    dispatcher = NotificationFanoutDispatcher(transport, TokenPruner(store))
    tokens = ["tok-good", "tok-dead", "tok-flaky", "tok-bad"]
    paths = [f"messages/1/to/k{i}" for i in range(1, 5)]

    outcomes = await dispatcher.dispatch(tokens, _PAYLOAD, paths)

    assert [outcome.error_code for outcome in outcomes] == [None, NOT_REGISTERED, UNAVAILABLE, INVALID]
    assert store.peek("messages/1/to") == {"k1": "tok-good", "k3": "tok-flaky"}


@pytest.mark.asyncio
async def test_prune_accepts_callable_locator() -> None:
    store = InMemoryStore({"users": {"u1": {"token": "tok-dead", "model": "Golf"}}})
    pruner = TokenPruner(store)

    pruned = await pruner.prune(
        [DeliveryOutcome(token="tok-dead", error_code=NOT_REGISTERED)],
        ["tok-dead"],
        lambda _index, _token: "users/u1/token",
    )

    assert pruned == ["users/u1/token"]
    assert store.peek("users/u1") == {"model": "Golf"}


@pytest.mark.asyncio
async def test_prune_is_idempotent() -> None:
    store = InMemoryStore({"users": {"u1": {"token": "tok-dead", "model": "Golf"}}})
    pruner = TokenPruner(store)
    outcomes = [DeliveryOutcome(token="tok-dead", error_code=NOT_REGISTERED)]

    first = await pruner.prune(outcomes, ["tok-dead"], ["users/u1/token"])
    second = await pruner.prune(outcomes, ["tok-dead"], ["users/u1/token"])

    assert first == ["users/u1/token"]
    assert second == []
    assert store.peek("users/u1/token") is None


@pytest.mark.asyncio
async def test_prune_keeps_token_refreshed_since_dispatch() -> None:
    store = InMemoryStore({"users": {"u1": {"token": "tok-new"}}})

    pruned = await TokenPruner(store).prune(
        [DeliveryOutcome(token="tok-old", error_code=INVALID)],
        ["tok-old"],
        ["users/u1/token"],
    )

    assert pruned == []
    assert store.peek("users/u1/token") == "tok-new"


@pytest.mark.asyncio
async def test_removal_failure_is_swallowed_and_other_removals_settle(transport: RecordingTransport) -> None:
    store = _FailingDeleteStore(
        {"users": {"u1": {"token": "tok-1"}, "u2": {"token": "tok-2"}}},
        failing={"users/u1/token"},
    )
    transport.errors.update({"tok-1": NOT_REGISTERED, "tok-2": NOT_REGISTERED})
    dispatcher = NotificationFanoutDispatcher(transport, TokenPruner(store))

    outcomes = await dispatcher.dispatch(["tok-1", "tok-2"], _PAYLOAD, ["users/u1/token", "users/u2/token"])

    assert len(outcomes) == 2
    assert store.peek("users/u1/token") == "tok-1"
    assert store.peek("users/u2/token") is None


@pytest.mark.asyncio
async def test_unknown_location_is_not_pruned() -> None:
    store = InMemoryStore({"users": {"u1": {"token": "tok-dead"}}})

    pruned = await TokenPruner(store).prune(
        [DeliveryOutcome(token="tok-dead", error_code=NOT_REGISTERED)],
        ["tok-dead"],
        [None],
    )

    assert pruned == []
    assert store.peek("users/u1/token") == "tok-dead"
