"""carcare - Store-triggered proximity and push notification handlers."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("carcare-functions")
except PackageNotFoundError:
    __version__ = "0+local"

from carcare._transport import FcmTransport, PushTransport
from carcare.app import CarCareFunctions
from carcare.config import CarCareConfig
from carcare.events import StoreWriteEvent
from carcare.exceptions import (
    CarCareConfigError,
    CarCareError,
    CarCareStoreError,
    CarCareTransportError,
)
from carcare.fanout import NotificationFanoutDispatcher
from carcare.geo import distance
from carcare.groups import GroupMembershipCoordinator
from carcare.messages import MessageNotifier
from carcare.models import (
    Coords,
    DeliveryOutcome,
    Group,
    HandlerResult,
    HandlerStatus,
    Invitation,
    MemberSnapshot,
    Message,
    NeighborEdge,
    NotificationPayload,
    SkipReason,
    User,
    VoiceClip,
)
from carcare.proximity import NeighborGraphMaintainer, NeighborSet
from carcare.pruning import TokenPruner
from carcare.store import InMemoryStore, RestStore, Store
from carcare.triggers import TriggerKind, TriggerRouter

__all__ = [
    "__version__",
    "CarCareConfig",
    "CarCareConfigError",
    "CarCareError",
    "CarCareFunctions",
    "CarCareStoreError",
    "CarCareTransportError",
    "Coords",
    "DeliveryOutcome",
    "FcmTransport",
    "Group",
    "GroupMembershipCoordinator",
    "HandlerResult",
    "HandlerStatus",
    "InMemoryStore",
    "Invitation",
    "MemberSnapshot",
    "Message",
    "MessageNotifier",
    "NeighborEdge",
    "NeighborGraphMaintainer",
    "NeighborSet",
    "NotificationFanoutDispatcher",
    "NotificationPayload",
    "PushTransport",
    "RestStore",
    "SkipReason",
    "Store",
    "StoreWriteEvent",
    "TokenPruner",
    "TriggerKind",
    "TriggerRouter",
    "User",
    "VoiceClip",
    "distance",
]
