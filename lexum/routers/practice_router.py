from fastapi import APIRouter, HTTPException, status
from fastapi.params import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lexum.database.setup import get_db
from lexum.dependencies import get_user_id, get_dispatcher, get_background_writes
from lexum.exceptions import DependencyError, NotFoundError, ValidationError
from lexum.repositories.background_writes import BackgroundWrites
from lexum.repositories.practice_repository import PracticeRepository
from lexum.schemas.practice_schemas import PracticeResultRequest, ProgressResponse, SkillProfileResponse
from lexum.services import skill_profiler
from lexum.tasks.dispatcher import EventDispatcher

from lexum.logging_config import setup_logger

router = APIRouter()

logger = setup_logger(__name__, "practice.log")


@router.post('/result', response_model=ProgressResponse)
async def record_practice_result(
        data: PracticeResultRequest,
        db: AsyncSession = Depends(get_db),
        user_id: int = Depends(get_user_id),
        dispatcher: EventDispatcher = Depends(get_dispatcher),
        side_writes: BackgroundWrites = Depends(get_background_writes),
):
    """
    Record one answer. The next review is computed here, not by the client.

    The answer log and the skill profile update run after the response.
    """
    try:
        progress = await PracticeRepository(db, user_id).record_result(data.word_id, data.quality)
    except HTTPException:
        raise
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DependencyError as e:
        logger.error(f"❌ Practice result not saved for user {user_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Progress is temporarily unavailable")
    except Exception as e:
        logger.error(f"Unexpected error recording practice result: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="An unexpected error occurred")

    is_correct = data.quality != "forgot"
    dispatcher.dispatch(
        f"practice-event:{user_id}:{data.word_id}",
        lambda: side_writes.log_practice_event(user_id, data.word_id, data.quality, is_correct),
    )
    dispatcher.dispatch(
        f"skill-profile:{user_id}",
        lambda: side_writes.update_skill_profile(user_id, data.word_id, is_correct),
    )
    return ProgressResponse.model_validate(progress)


@router.get('/skills', response_model=SkillProfileResponse)
async def get_skill_profile(
        db: AsyncSession = Depends(get_db),
        user_id: int = Depends(get_user_id),
):
    try:
        profile = await PracticeRepository(db, user_id).get_skill_profile()
        return SkillProfileResponse(
            **profile.as_dict(),
            dominant_weakness=skill_profiler.dominant_weakness(profile),
        )
    except HTTPException:
        raise
    except DependencyError as e:
        logger.error(f"❌ Skill profile unavailable for user {user_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Skill profile is temporarily unavailable")
    except Exception as e:
        logger.error(f"Unexpected error reading skill profile: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="An unexpected error occurred")
