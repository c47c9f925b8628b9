"""Data models for store records, notifications and handler results."""

from carcare.models._base import CarCareModel
from carcare.models.group import Group, Invitation, MemberSnapshot
from carcare.models.message import Message, VoiceClip
from carcare.models.notification import DeliveryOutcome, NotificationPayload
from carcare.models.result import HandlerResult, HandlerStatus, SkipReason
from carcare.models.user import Coords, NeighborEdge, User

__all__ = [
    "CarCareModel",
    "Coords",
    "DeliveryOutcome",
    "Group",
    "HandlerResult",
    "HandlerStatus",
    "Invitation",
    "MemberSnapshot",
    "Message",
    "NeighborEdge",
    "NotificationPayload",
    "SkipReason",
    "User",
    "VoiceClip",
]
