from fastapi import APIRouter, HTTPException, status
from fastapi.params import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lexum.database.setup import get_db
from lexum.dependencies import get_user_id
from lexum.exceptions import DependencyError, EntitlementError, NotFoundError
from lexum.repositories.today_repository import TodayRepository
from lexum.repositories.user_repository import UserRepository
from lexum.schemas.today_schemas import (
    DailyPlanResponse, RegenPlanRequest, PlanItemStatusRequest, PlanItemStatusResponse,
)

from lexum.logging_config import setup_logger

router = APIRouter()

logger = setup_logger(__name__, "plan.log")


@router.get('', response_model=DailyPlanResponse)
async def get_today(
        db: AsyncSession = Depends(get_db),
        user_id: int = Depends(get_user_id),
):
    """Today's study plan, generated on first request of the (UTC) day."""
    try:
        entitlements = await UserRepository(db, user_id).get_entitlements()
        return await TodayRepository(db, user_id).get_or_create_today(entitlements)
    except HTTPException:
        raise
    except DependencyError as e:
        logger.error(f"❌ Plan store unavailable for user {user_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Plan is temporarily unavailable")
    except Exception as e:
        logger.error(f"Unexpected error building today's plan: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="An unexpected error occurred")


@router.post('/regen', response_model=DailyPlanResponse)
async def regenerate_today(
        data: RegenPlanRequest,
        db: AsyncSession = Depends(get_db),
        user_id: int = Depends(get_user_id),
):
    try:
        entitlements = await UserRepository(db, user_id).get_entitlements()
        return await TodayRepository(db, user_id).regenerate(entitlements, data.target_count)
    except HTTPException:
        raise
    except EntitlementError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail={"error": str(e), "code": e.code})
    except DependencyError as e:
        logger.error(f"❌ Plan regeneration failed for user {user_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Plan is temporarily unavailable")
    except Exception as e:
        logger.error(f"Unexpected error regenerating plan: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="An unexpected error occurred")


@router.patch('/items/{word_id}', response_model=PlanItemStatusResponse)
async def update_plan_item(
        word_id: int,
        data: PlanItemStatusRequest,
        db: AsyncSession = Depends(get_db),
        user_id: int = Depends(get_user_id),
):
    try:
        return await TodayRepository(db, user_id).set_item_status(word_id, data.status)
    except HTTPException:
        raise
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DependencyError as e:
        logger.error(f"❌ Plan item update failed for user {user_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Plan is temporarily unavailable")
    except Exception as e:
        logger.error(f"Unexpected error updating plan item: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="An unexpected error occurred")
