from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from carcare.config import CarCareConfig
from carcare.exceptions import CarCareStoreError
from carcare.fanout import NotificationFanoutDispatcher
from carcare.groups import GroupMembershipCoordinator
from carcare.models.result import HandlerStatus, SkipReason
from carcare.pruning import TokenPruner
from carcare.store.memory import InMemoryStore

if TYPE_CHECKING:
    from conftest import RecordingTransport


class _UserReadFailsStore(InMemoryStore):
    async def get(self, path: str) -> Any:
        if path.startswith("users/"):
            raise CarCareStoreError("read timed out", path=path)
        return await super().get(path)


def _members(count: int) -> list[dict[str, Any]]:
    return [{"id": f"m{i}", "wasAccepted": True} for i in range(count)]


def _coordinator(
    store: InMemoryStore,
    transport: RecordingTransport,
) -> GroupMembershipCoordinator:
    dispatcher = NotificationFanoutDispatcher(transport, TokenPruner(store))
    return GroupMembershipCoordinator(store, dispatcher, CarCareConfig())


def _store(group: dict[str, Any], **users: dict[str, Any]) -> InMemoryStore:
    return InMemoryStore({"groups": {"g1": group}, "users": users})


# ------------------------------------------------------------------
# Accept path
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_accept_appends_snapshot_of_current_user_record(transport: RecordingTransport) -> None:
    store = _store(
        {"owner": "o1", "invited": {"u2": {"wasSend": True, "wasAccepted": True}}, "members": _members(2)},
        u2={"model": "Golf", "nr": "WA 1", "token": "tok-u2", "coords": {"lat": 1.0, "lon": 1.0}},
    )
    coordinator = _coordinator(store, transport)

    result = await coordinator.on_invite_accepted_write("g1", "u2")

    assert result.status == HandlerStatus.APPLIED
    members = store.peek("groups/g1/members")
    assert len(members) == 3
    assert members[-1] == {"id": "u2", "model": "Golf", "nr": "WA 1", "token": "tok-u2", "wasAccepted": True}
    assert transport.calls == []


@pytest.mark.asyncio
async def test_accept_into_full_group_does_not_grow_members(transport: RecordingTransport) -> None:
    store = _store(
        {"owner": "o1", "invited": {"u7": {"wasSend": True, "wasAccepted": True}}, "members": _members(6)},
        u7={"model": "Golf"},
    )
    coordinator = _coordinator(store, transport)

    result = await coordinator.on_invite_accepted_write("g1", "u7")

    assert result.status == HandlerStatus.SKIPPED
    assert result.reason == SkipReason.GROUP_FULL
    assert len(store.peek("groups/g1/members")) == 6


@pytest.mark.asyncio
async def test_accept_without_acceptance_flag_is_skipped(transport: RecordingTransport) -> None:
    store = _store({"owner": "o1", "invited": {"u2": {"wasSend": True}}, "members": _members(1)}, u2={})
    coordinator = _coordinator(store, transport)

    result = await coordinator.on_invite_accepted_write("g1", "u2")

    assert result.reason == SkipReason.NOT_ACCEPTED
    assert len(store.peek("groups/g1/members")) == 1


@pytest.mark.asyncio
async def test_accept_path_appends_candidate_already_listed_by_send_path(transport: RecordingTransport) -> None:
    # Acceptance does not check for an existing entry, unlike the send path.
    # This pins the current behaviour: the candidate ends up listed twice.
    store = _store(
        {
            "owner": "o1",
            "invited": {"u2": {"wasSend": True, "wasAccepted": True}},
            "members": [{"id": "u2", "wasAccepted": False}],
        },
        u2={"model": "Golf"},
    )
    coordinator = _coordinator(store, transport)

    await coordinator.on_invite_accepted_write("g1", "u2")

    members = store.peek("groups/g1/members")
    assert [member["id"] for member in members] == ["u2", "u2"]
    assert [member["wasAccepted"] for member in members] == [False, True]


@pytest.mark.asyncio
async def test_accept_for_missing_group_is_skipped(transport: RecordingTransport) -> None:
    store = InMemoryStore({"users": {"u2": {}}})
    coordinator = _coordinator(store, transport)

    result = await coordinator.on_invite_accepted_write("nope", "u2")

    assert result.reason == SkipReason.NOT_FOUND
    assert store.peek("groups") is None


# ------------------------------------------------------------------
# Send path
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_send_marks_invite_appends_member_and_notifies_candidate(transport: RecordingTransport) -> None:
    store = _store(
        {"owner": "o1", "invited": {"u2": {"wasSend": False, "wasAccepted": False}}, "members": _members(1)},
        u2={"model": "Golf", "nr": "WA 1", "token": "tok-u2"},
    )
    coordinator = _coordinator(store, transport)

    result = await coordinator.on_invite_send_write("g1", "u2")

    assert result.status == HandlerStatus.APPLIED
    assert store.peek("groups/g1/invited/u2/wasSend") is True
    members = store.peek("groups/g1/members")
    assert members[-1] == {"id": "u2", "model": "Golf", "nr": "WA 1", "token": "tok-u2", "wasAccepted": False}

    assert len(transport.calls) == 1
    tokens, payload = transport.calls[0]
    assert tokens == ["tok-u2"]
    assert payload.title == "CarCare"
    assert payload.tag == "1|g1|o1|u2"
    assert payload.data == {"kind": "1", "groupId": "g1", "owner": "o1", "invitedId": "u2", "tag": "1|g1|o1|u2"}


@pytest.mark.asyncio
async def test_second_send_is_a_no_op(transport: RecordingTransport) -> None:
    store = _store(
        {"owner": "o1", "invited": {"u2": {"wasSend": False}}, "members": _members(1)},
        u2={"token": "tok-u2"},
    )
    coordinator = _coordinator(store, transport)

    await coordinator.on_invite_send_write("g1", "u2")
    result = await coordinator.on_invite_send_write("g1", "u2")

    assert result.status == HandlerStatus.SKIPPED
    assert result.reason == SkipReason.ALREADY_SENT
    assert [member["id"] for member in store.peek("groups/g1/members")] == ["m0", "u2"]
    assert len(transport.calls) == 1


@pytest.mark.asyncio
async def test_send_skips_candidate_already_in_members(transport: RecordingTransport) -> None:
    store = _store(
        {"owner": "o1", "invited": {"u2": {"wasSend": False}}, "members": [{"id": "u2"}]},
        u2={"token": "tok-u2"},
    )
    coordinator = _coordinator(store, transport)

    result = await coordinator.on_invite_send_write("g1", "u2")

    assert result.reason == SkipReason.ALREADY_SENT
    assert transport.calls == []
    assert store.peek("groups/g1/invited/u2/wasSend") is False


@pytest.mark.asyncio
async def test_send_into_full_group_changes_nothing(transport: RecordingTransport) -> None:
    store = _store(
        {"owner": "o1", "invited": {"u7": {"wasSend": False}}, "members": _members(6)},
        u7={"token": "tok-u7"},
    )
    coordinator = _coordinator(store, transport)

    result = await coordinator.on_invite_send_write("g1", "u7")

    assert result.reason == SkipReason.GROUP_FULL
    assert store.peek("groups/g1/invited/u7/wasSend") is False
    assert len(store.peek("groups/g1/members")) == 6
    assert transport.calls == []


@pytest.mark.asyncio
async def test_send_to_candidate_without_token_records_invite_only(transport: RecordingTransport) -> None:
    store = _store({"owner": "o1", "invited": {"u2": {"wasSend": False}}}, u2={"model": "Golf"})
    coordinator = _coordinator(store, transport)

    result = await coordinator.on_invite_send_write("g1", "u2")

    assert result.status == HandlerStatus.APPLIED
    assert store.peek("groups/g1/members") == [{"id": "u2", "model": "Golf", "wasAccepted": False}]
    assert transport.calls == []


@pytest.mark.asyncio
async def test_send_prunes_unregistered_candidate_token(transport: RecordingTransport) -> None:
    store = _store(
        {"owner": "o1", "invited": {"u2": {"wasSend": False}}},
        u2={"model": "Golf", "token": "tok-dead"},
    )
    transport.errors.update({"tok-dead": "messaging/registration-token-not-registered"})
    coordinator = _coordinator(store, transport)

    await coordinator.on_invite_send_write("g1", "u2")

    assert store.peek("users/u2") == {"model": "Golf"}


@pytest.mark.asyncio
async def test_read_failure_aborts_without_writes(transport: RecordingTransport) -> None:
    group = {"owner": "o1", "invited": {"u2": {"wasSend": False}}, "members": _members(1)}
    store = _UserReadFailsStore({"groups": {"g1": group}, "users": {"u2": {"token": "tok-u2"}}})
    coordinator = _coordinator(store, transport)

    with pytest.raises(CarCareStoreError):
        await coordinator.on_invite_send_write("g1", "u2")

    assert store.peek("groups/g1") == group
    assert transport.calls == []
