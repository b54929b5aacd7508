from fastapi import APIRouter, HTTPException, status
from fastapi.params import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lexum.database.setup import get_db
from lexum.dependencies import get_user_id, get_dispatcher, get_ai_service, get_background_writes
from lexum.exceptions import DependencyError, NotFoundError, QuotaExceededError
from lexum.repositories.background_writes import BackgroundWrites
from lexum.repositories.recommendation_repository import RecommendationRepository
from lexum.repositories.user_repository import UserRepository
from lexum.schemas.recommendation_schemas import GenerateRecommendationsRequest, RecommendationActionRequest
from lexum.services.ai_service import AIService
from lexum.services.quota import QuotaState
from lexum.services.recommendation_pipeline import RecommendationPipeline, RecommendationActionService
from lexum.tasks.dispatcher import EventDispatcher

from lexum.logging_config import setup_logger

router = APIRouter()

logger = setup_logger(__name__, "recommendations.log")


@router.get('/quota')
async def get_recommendation_quota(
        db: AsyncSession = Depends(get_db),
        user_id: int = Depends(get_user_id),
):
    try:
        users = UserRepository(db, user_id)
        user = await users.get_user()
        entitlements = await users.get_entitlements()
        return QuotaState.from_profile(user, entitlements).as_dict()
    except HTTPException:
        raise
    except DependencyError as e:
        logger.error(f"❌ Quota unavailable for user {user_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Quota is temporarily unavailable")
    except Exception as e:
        logger.error(f"Unexpected error reading quota: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="An unexpected error occurred")


@router.post('/generate')
async def generate_recommendations(
        data: GenerateRecommendationsRequest,
        db: AsyncSession = Depends(get_db),
        user_id: int = Depends(get_user_id),
        ai_service: AIService = Depends(get_ai_service),
        dispatcher: EventDispatcher = Depends(get_dispatcher),
        side_writes: BackgroundWrites = Depends(get_background_writes),
):
    try:
        entitlements = await UserRepository(db, user_id).get_entitlements()
        pipeline = RecommendationPipeline(
            store=RecommendationRepository(db),
            generator=ai_service,
            dispatcher=dispatcher,
            side_writes=side_writes,
        )
        result = await pipeline.run(user_id, data, entitlements)
        return result.to_response()
    except HTTPException:
        raise
    except QuotaExceededError as e:
        logger.info(f"⛔ User {user_id} hit the daily recommendation limit ({e.used}/{e.limit})")
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=e.to_detail())
    except DependencyError as e:
        logger.error(f"❌ Recommendations unavailable for user {user_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Recommendations are temporarily unavailable")
    except Exception as e:
        logger.error(f"Unexpected error generating recommendations: {str(e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="An unexpected error occurred")


@router.post('/action')
async def act_on_recommendation(
        data: RecommendationActionRequest,
        db: AsyncSession = Depends(get_db),
        user_id: int = Depends(get_user_id),
        dispatcher: EventDispatcher = Depends(get_dispatcher),
        side_writes: BackgroundWrites = Depends(get_background_writes),
):
    try:
        service = RecommendationActionService(
            store=RecommendationRepository(db),
            dispatcher=dispatcher,
            side_writes=side_writes,
        )
        result = await service.act(user_id, data)
        return result.model_dump()
    except HTTPException:
        raise
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DependencyError as e:
        logger.error(f"❌ Recommendation action failed for user {user_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Recommendations are temporarily unavailable")
    except Exception as e:
        logger.error(f"Unexpected error recording recommendation action: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="An unexpected error occurred")
