"""Import all models so Alembic can discover them via Base.metadata."""
from chat_realtime.infrastructure.db.models.group import GroupMemberModel, GroupModel
from chat_realtime.infrastructure.db.models.message import MessageModel
from chat_realtime.infrastructure.db.models.outbox import OutboxEventModel
from chat_realtime.infrastructure.db.models.relationship import RelationshipEdgeModel

__all__ = [
    "GroupMemberModel",
    "GroupModel",
    "MessageModel",
    "OutboxEventModel",
    "RelationshipEdgeModel",
]
