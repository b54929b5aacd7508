# schemas/practice_schemas.py
from pydantic import BaseModel, ConfigDict, field_validator
from typing import Optional
from datetime import datetime

from lexum.services.srs_scheduler import QUALITY_GRADES


class PracticeResultRequest(BaseModel):
    word_id: int
    quality: str

    @field_validator("quality")
    @classmethod
    def validate_quality(cls, v):
        if v not in QUALITY_GRADES:
            raise ValueError(f"quality must be one of: {', '.join(QUALITY_GRADES)}")
        return v


class ProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    word_id: int
    ease_factor: float
    interval_days: int
    repetitions: int
    next_review: Optional[datetime] = None
    last_result: Optional[str] = None
    wrong_count: int = 0
    correct_count: int = 0
    personal_score: Optional[int] = None
    word_state: str = "new"
    trend_direction: str = "stable"


class SkillProfileResponse(BaseModel):
    frequency_score: int
    polysemy_score: int
    morph_score: int
    idiom_score: int
    total_updates: int
    dominant_weakness: Optional[str] = None
