from __future__ import annotations

from enum import StrEnum


class TargetKind(StrEnum):
    USER = "user"
    GROUP = "group"


class EdgeStatus(StrEnum):
    PENDING = "pending"
    FRIENDS = "friends"


class PairState(StrEnum):
    """Relationship of A towards B, read from A's side."""

    NONE = "none"
    REQUEST_SENT_BY_A = "request_sent_by_a"
    REQUEST_SENT_BY_B = "request_sent_by_b"
    FRIENDS = "friends"


class RelationshipRole(StrEnum):
    SENT = "sent"
    RECEIVED = "received"
    FRIEND = "friend"


class RequestDirection(StrEnum):
    SENT = "sent"
    RECEIVED = "received"


class NotificationKind(StrEnum):
    PRIVATE = "private"
    GROUP = "group"


class OutboundEvent(StrEnum):
    PRESENCE_UPDATE = "presence-update"
    PRIVATE_MESSAGE = "private-message"
    GROUP_MESSAGE = "group-message"
    GROUP_CREATED = "group-created"
    MEMBER_ADDED = "member-added"
    MEMBERSHIP_CHANGED = "membership-changed"
    REMOVED_FROM_GROUP = "removed-from-group"
    LEFT_GROUP = "left-group"
    GROUP_DISBANDED = "group-disbanded"
    NOTIFICATIONS = "notifications"
    PONG = "pong"
    ERROR = "error"


class OutboxEventType(StrEnum):
    MESSAGE_CREATED = "chat.message_created"
    GROUP_CREATED = "chat.group_created"
    MEMBERS_ADDED = "chat.group_members_added"
    MEMBER_REMOVED = "chat.group_member_removed"
    MEMBER_LEFT = "chat.group_member_left"
