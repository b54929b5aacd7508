# schemas/today_schemas.py
from pydantic import BaseModel, ConfigDict, field_validator
from typing import List, Optional
from datetime import datetime, date


PLAN_ITEM_STATUSES = ("pending", "completed", "skipped")


class PlanWordSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    original: str
    translation: str
    transcription: Optional[str] = None
    cefr_level: Optional[str] = None
    part_of_speech: Optional[str] = None
    phrase_flag: bool = False
    example_sentence_target: Optional[str] = None
    difficulty_score: Optional[float] = None


class PlanItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    word_id: int
    list_id: Optional[int] = None
    slot_type: str
    order_index: int
    status: str
    completed_at: Optional[datetime] = None
    word: Optional[PlanWordSchema] = None


class DailyPlanResponse(BaseModel):
    id: int
    date: date
    target_count: int
    completed_count: int
    generated_at: Optional[datetime] = None
    items: List[PlanItemResponse]
    can_regen: bool
    can_customize: bool
    plan_size_limit: int


class RegenPlanRequest(BaseModel):
    target_count: Optional[int] = None


class PlanItemStatusRequest(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in PLAN_ITEM_STATUSES:
            raise ValueError("status must be completed, skipped, or pending")
        return v


class PlanItemStatusResponse(BaseModel):
    item: PlanItemResponse
    completed_count: int
    target_count: int
