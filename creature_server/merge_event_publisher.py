import json
import logging
from uuid import UUID

from redis.asyncio import Redis
from redis.exceptions import RedisError

from creature_server.models.schema_models import MergeCompletedSchema, RitualPendingSchema

MERGE_COMPLETED_EVENT = "merge_completed"
RITUAL_PROGRESS_EVENT = "ritual_progress"


def player_channel(player_id: UUID) -> str:
    return f"player:{player_id}"


class MergeEventPublisher:
    """Publishes merge results to the player's Redis channel after commit."""

    def __init__(self, redis: Redis):
        """Initialize MergeEventPublisher with a Redis connection."""
        self.redis: Redis = redis

    async def publish(self, player_id: UUID, outcome: MergeCompletedSchema | RitualPendingSchema) -> bool:
        """Send one merge event. The merge is already committed, so failures are only logged.

        Args:
            player_id (UUID): Channel owner
            outcome (MergeCompletedSchema | RitualPendingSchema): Result of the request

        Returns:
            bool: True when Redis accepted the message
        """
        if isinstance(outcome, MergeCompletedSchema):
            event = MERGE_COMPLETED_EVENT
            data = {
                "new_instance_id": str(outcome.new_instance.instance_id),
                "template_key": outcome.new_instance.template_key,
                "level": outcome.new_instance.level,
                "procedure": outcome.procedure,
                "anima_spent": outcome.anima_spent,
            }
        else:
            event = RITUAL_PROGRESS_EVENT
            data = {
                "first_instance_id": str(outcome.first_instance_id),
                "second_instance_id": str(outcome.second_instance_id),
                "progress": outcome.progress,
                "round": outcome.round_index,
                "cooldown_until": outcome.cooldown_until.isoformat(),
            }

        payload = json.dumps({"event": event, "data": data})
        logging.debug(f"Payload: {payload}")
        try:
            await self.redis.publish(player_channel(player_id), payload)
        except RedisError as e:
            logging.warning(f"Failed to publish {event} for player {player_id}: {e}")
            return False
        return True
