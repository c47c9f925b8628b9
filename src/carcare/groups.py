"""Group invitations and bounded member lists.

Per ``(group, candidate)`` pair the flags move through::

    Invited(wasSend=false, wasAccepted=false)
      -> InviteSent(wasSend=true)      on_invite_send_write
      -> Accepted(wasAccepted=true)    client
      -> Member                        on_invite_accepted_write

Clients request an invite by creating ``wasSend: false``; the send handler
flips it to ``true`` together with the member append.
"""

from __future__ import annotations

import asyncio
import logging

from carcare._constants import TAG_KIND_INVITE, build_tag
from carcare.config import CarCareConfig
from carcare.fanout import NotificationFanoutDispatcher
from carcare.models.group import Group, MemberSnapshot
from carcare.models.notification import NotificationPayload
from carcare.models.result import HandlerResult, SkipReason
from carcare.models.user import User
from carcare.store.base import Store, join_path

_logger = logging.getLogger(__name__)


class GroupMembershipCoordinator:
    """Applies invite-send and invite-accept writes to ``groups/{id}``."""

    def __init__(
        self,
        store: Store,
        dispatcher: NotificationFanoutDispatcher,
        config: CarCareConfig,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._config = config

    @property
    def capacity(self) -> int:
        return self._config.group_capacity

    async def _load(self, group_id: str, candidate_id: str) -> tuple[Group | None, User]:
        group_raw, user_raw = await asyncio.gather(
            self._store.get(join_path("groups", group_id)),
            self._store.get(join_path("users", candidate_id)),
        )
        group = Group.from_record(group_id, group_raw) if isinstance(group_raw, dict) else None
        return group, User.from_record(candidate_id, user_raw)

    async def on_invite_accepted_write(self, group_id: str, member_id: str) -> HandlerResult:
        """Append the accepting candidate to ``members`` while there is room.

        Unlike the send path this does not check whether the candidate is
        already listed, so a candidate added by the send path is appended a
        second time on acceptance.
        """
        group, user = await self._load(group_id, member_id)
        if group is None:
            return HandlerResult.skipped(SkipReason.NOT_FOUND, f"group {group_id}")
        if not group.invitation(member_id).was_accepted:
            return HandlerResult.skipped(SkipReason.NOT_ACCEPTED)
        if len(group.members) >= self.capacity:
            _logger.info("Group %s is full; %s not added", group_id, member_id)
            return HandlerResult.skipped(SkipReason.GROUP_FULL)

        members = [member.to_store() for member in group.members]
        members.append(MemberSnapshot.from_user(user, was_accepted=True).to_store())
        await self._store.set(join_path("groups", group_id, "members"), members)

        _logger.info("Added %s to group %s (%d members)", member_id, group_id, len(members))
        return HandlerResult.applied(f"{member_id} joined {group_id}")

    async def on_invite_send_write(self, group_id: str, invited_id: str) -> HandlerResult:
        """Record the invite, add the candidate to ``members`` and notify them.

        A second send for the same candidate, or a send into a full group,
        changes nothing and sends nothing.
        """
        group, user = await self._load(group_id, invited_id)
        if group is None:
            return HandlerResult.skipped(SkipReason.NOT_FOUND, f"group {group_id}")
        if group.invitation(invited_id).was_send or group.has_member(invited_id):
            return HandlerResult.skipped(SkipReason.ALREADY_SENT)
        if len(group.members) >= self.capacity:
            _logger.info("Group %s is full; invite to %s not sent", group_id, invited_id)
            return HandlerResult.skipped(SkipReason.GROUP_FULL)

        members = [member.to_store() for member in group.members]
        members.append(MemberSnapshot.from_user(user, was_accepted=False).to_store())
        await self._store.update(
            {
                join_path("groups", group_id, "invited", invited_id, "wasSend"): True,
                join_path("groups", group_id, "members"): members,
            }
        )
        _logger.info("Invite to %s recorded for group %s", invited_id, group_id)

        if not user.token:
            _logger.info("User %s has no device token; invite not pushed", invited_id)
            return HandlerResult.applied(f"{invited_id} invited to {group_id} without notification")

        owner = group.owner or ""
        tag = build_tag(TAG_KIND_INVITE, group_id, owner, invited_id)
        payload = NotificationPayload(
            title=self._config.notification_title,
            body=self._config.invite_body,
            tag=tag,
            click_action=self._config.click_action,
            data={
                "kind": str(TAG_KIND_INVITE),
                "groupId": group_id,
                "owner": owner,
                "invitedId": invited_id,
                "tag": tag,
            },
        )
        outcomes = await self._dispatcher.dispatch(
            [user.token],
            payload,
            [join_path("users", invited_id, "token")],
        )
        return HandlerResult.applied(f"{invited_id} invited to {group_id}", outcomes)
