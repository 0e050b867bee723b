"""Database models. Importing this package registers every table on Base.metadata."""
from hangout.infra.db.models.user import UserModel
from hangout.infra.db.models.friendship import FriendshipModel
from hangout.infra.db.models.room import RoomModel, RoomMembershipModel
from hangout.infra.db.models.message import MessageModel
from hangout.infra.db.models.live_session import LiveSessionModel
from hangout.infra.db.models.notification import NotificationModel
from hangout.infra.db.models.device import DeviceModel

__all__ = [
    "UserModel",
    "FriendshipModel",
    "RoomModel",
    "RoomMembershipModel",
    "MessageModel",
    "LiveSessionModel",
    "NotificationModel",
    "DeviceModel",
]
