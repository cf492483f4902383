import math
from typing import List

from creature_server.models.dc_models import (
    CreatureListModel,
    MergeCompletedModel,
    MergeHistoryModel,
    MergeProcedureModel,
    ProgressModel,
    RitualPendingModel,
)
from creature_server.models.schema_models import (
    MergeCompletedSchema,
    MergeHistorySchema,
    PlayerCreaturesSchema,
    RitualPendingSchema,
)


class DataConverter:
    """This class is used to convert data between different formats."""

    def convert_pending_to_model(self, pending: RitualPendingSchema) -> RitualPendingModel:
        """Convert the RitualPendingSchema to the RitualPendingModel to send client

        Args:
            pending (RitualPendingSchema): Ritual state after this request

        Returns:
            RitualPendingModel: Type for transmission to the client
        """
        wait_seconds = max(int(math.ceil(pending.wait_remaining.total_seconds())), 0)
        wait_minutes = max(int(math.ceil(wait_seconds / 60)), 1)
        if pending.increment:
            message = (
                f"Ritual progressed by {pending.increment}%. "
                f"Please wait {wait_minutes} minutes before clicking again"
            )
        else:
            message = f"Please wait {wait_minutes} minutes before clicking again"

        return RitualPendingModel(
            message=message,
            first_instance_id=pending.first_instance_id,
            second_instance_id=pending.second_instance_id,
            from_level=pending.from_level,
            target_level=pending.from_level + 1,
            round=pending.round_index,
            wait_remaining_seconds=wait_seconds,
            cooldown_until=pending.cooldown_until,
            anima_spent=pending.anima_spent,
            progress=ProgressModel(current=pending.progress, percentage=f"{pending.progress}%"),
        )

    def convert_completed_to_model(self, completed: MergeCompletedSchema) -> MergeCompletedModel:
        new_creature = completed.new_instance
        if completed.procedure == MergeProcedureModel.ritual.value:
            message = f"Ritual complete! {new_creature.name} reached level {new_creature.level}"
        else:
            message = f"{new_creature.name} merged to level {new_creature.level}"
        return MergeCompletedModel(
            message=message,
            procedure=MergeProcedureModel(completed.procedure),
            new_creature=new_creature,
            anima_spent=completed.anima_spent,
            can_collect=completed.history.can_collect if completed.history else True,
        )

    def convert_outcome_to_model(
        self, outcome: MergeCompletedSchema | RitualPendingSchema
    ) -> MergeCompletedModel | RitualPendingModel:
        if isinstance(outcome, RitualPendingSchema):
            return self.convert_pending_to_model(outcome)
        return self.convert_completed_to_model(outcome)

    def convert_history_to_models(self, entries: List[MergeHistorySchema]) -> List[MergeHistoryModel]:
        return [MergeHistoryModel.model_validate(entry.model_dump()) for entry in entries]

    def convert_creatures_to_model(self, data: PlayerCreaturesSchema) -> CreatureListModel:
        return CreatureListModel(anima=data.player.anima, creatures=data.creatures)
