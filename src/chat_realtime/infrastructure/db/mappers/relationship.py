from __future__ import annotations

from chat_realtime.domain.entities.relationship import RelationshipEdge
from chat_realtime.infrastructure.db.models.relationship import RelationshipEdgeModel


def model_to_entity(model: RelationshipEdgeModel) -> RelationshipEdge:
    return RelationshipEdge(
        user_low=model.user_low,
        user_high=model.user_high,
        status=model.status,
        requester_id=model.requester_id,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def entity_to_model(entity: RelationshipEdge) -> RelationshipEdgeModel:
    return RelationshipEdgeModel(
        user_low=entity.user_low,
        user_high=entity.user_high,
        status=entity.status,
        requester_id=entity.requester_id,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
    )
