import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from redis.asyncio import Redis

from creature_server.authentication.basic_authentication import BasicAuthentication
from creature_server.converter import DataConverter
from creature_server.domain.errors import (
    ConcurrencyConflict,
    EligibilityError,
    EligibilityReason,
    InsufficientAnima,
    MergeError,
    ValidationError,
)
from creature_server.load_secrets import redis_host, redis_port
from creature_server.merge_event_publisher import MergeEventPublisher
from creature_server.models.basic_authentication_models import UserModel
from creature_server.models.dc_models import (
    CreatureListModel,
    MergeCompletedModel,
    MergeErrorModel,
    MergeHistoryModel,
    MergeRequestModel,
    RitualPendingModel,
)
from creature_server.models.schema_models import RitualPendingSchema
from creature_server.services import merge_db

redis = Redis(host=redis_host, port=redis_port, decode_responses=True, health_check_interval=30)

merge_router = APIRouter()
basic_auth = BasicAuthentication()
data_converter = DataConverter()
merge_event_publisher = MergeEventPublisher(redis)

CONFLICT_RETRY_AFTER_SECONDS = 1


def merge_error_to_http(error: MergeError) -> HTTPException:
    """Translate a domain error into the HTTP response the client sees

    Args:
        error (MergeError): Error raised by the merge service

    Returns:
        HTTPException: Exception to raise from the endpoint
    """
    reason = None
    headers = None
    if isinstance(error, ValidationError):
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(error, EligibilityError):
        reason = error.reason.value
        if error.reason == EligibilityReason.not_found:
            status_code = status.HTTP_404_NOT_FOUND
        else:
            status_code = status.HTTP_409_CONFLICT
    elif isinstance(error, InsufficientAnima):
        status_code = status.HTTP_402_PAYMENT_REQUIRED
    elif isinstance(error, ConcurrencyConflict):
        status_code = status.HTTP_409_CONFLICT
        headers = {"Retry-After": str(CONFLICT_RETRY_AFTER_SECONDS)}
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    detail = MergeErrorModel(code=error.code, reason=reason, message=error.message)
    return HTTPException(status_code=status_code, detail=detail.model_dump(), headers=headers)


async def announce(player_id, outcome: merge_db.MergeOutcome):
    """Publish the result unless the request only reported a running cooldown"""
    if isinstance(outcome, RitualPendingSchema) and not outcome.round_taken:
        return
    await merge_event_publisher.publish(player_id, outcome)


class MergeServer:
    @staticmethod
    @merge_router.post("/creatures/merge", response_model=MergeCompletedModel | RitualPendingModel)
    async def merge_creatures(
        merge_request: MergeRequestModel,
        user_data: UserModel = Depends(basic_auth.check_user_data),
    ):
        """Merge two creatures; milestone pairs go through the ritual

        Args:
            merge_request (MergeRequestModel): The two creatures to merge
            user_data (UserModel): The user data for authentication

        Returns:
            MergeCompletedModel | RitualPendingModel: New creature, or the ritual state and wait time
        """
        try:
            outcome = await merge_db.merge_creatures(
                user_data.player_id, merge_request.first_instance_id, merge_request.second_instance_id
            )
        except MergeError as e:
            raise merge_error_to_http(e) from e
        await announce(user_data.player_id, outcome)
        return data_converter.convert_outcome_to_model(outcome)

    @staticmethod
    @merge_router.post("/creatures/merge/instant", response_model=MergeCompletedModel)
    async def instant_merge(
        merge_request: MergeRequestModel,
        user_data: UserModel = Depends(basic_auth.check_user_data),
    ):
        try:
            outcome = await merge_db.instant_merge(
                user_data.player_id, merge_request.first_instance_id, merge_request.second_instance_id
            )
        except MergeError as e:
            raise merge_error_to_http(e) from e
        await announce(user_data.player_id, outcome)
        return data_converter.convert_completed_to_model(outcome)

    @staticmethod
    @merge_router.post("/creatures/merge/ritual", response_model=MergeCompletedModel | RitualPendingModel)
    async def advance_ritual(
        merge_request: MergeRequestModel,
        user_data: UserModel = Depends(basic_auth.check_user_data),
    ):
        """Take one step of a milestone ritual. Clicking again during the cooldown changes nothing

        Args:
            merge_request (MergeRequestModel): The two creatures in the ritual
            user_data (UserModel): The user data for authentication
        """
        try:
            outcome = await merge_db.advance_ritual(
                user_data.player_id, merge_request.first_instance_id, merge_request.second_instance_id
            )
        except MergeError as e:
            raise merge_error_to_http(e) from e
        await announce(user_data.player_id, outcome)
        return data_converter.convert_outcome_to_model(outcome)


class CreatureServer:
    @staticmethod
    @merge_router.get("/creatures", response_model=CreatureListModel)
    async def list_creatures(user_data: UserModel = Depends(basic_auth.check_user_data)):
        data = await merge_db.read_player_creatures(user_data.player_id)
        if data is None:
            logging.error(f"User {user_data.username} points at missing player {user_data.player_id}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Player not found")
        return data_converter.convert_creatures_to_model(data)

    @staticmethod
    @merge_router.get("/creatures/merge-history", response_model=List[MergeHistoryModel])
    async def list_merge_history(user_data: UserModel = Depends(basic_auth.check_user_data)):
        entries = await merge_db.read_merge_history(user_data.player_id)
        return data_converter.convert_history_to_models(entries)
