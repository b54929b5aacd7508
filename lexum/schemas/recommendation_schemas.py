# schemas/recommendation_schemas.py
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional


REASON_LABELS = {
    "cefr_fit": "Matches your level",
    "topic_match": "Matches your topic",
    "high_frequency": "High-frequency word",
    "phrase_needed": "You need more phrases",
    "gap_fill": "Fills a vocabulary gap",
    "explore": "Slightly above your level",
    "llm_curated": "AI-curated for you",
}
DEFAULT_REASON_LABEL = "Recommended for you"


class GenerateRecommendationsRequest(BaseModel):
    source_lang: str = Field(..., min_length=2, max_length=8)
    target_lang: str = Field(..., min_length=2, max_length=8)
    mode: str = "auto"
    intent: str = "expand"
    difficulty: str = "same"
    topic: Optional[str] = Field(None, max_length=100)
    format: str = "mixed"
    count: Optional[int] = None

    @field_validator("source_lang", "target_lang")
    @classmethod
    def upper_lang(cls, v):
        return v.strip().upper()

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v):
        if v not in ("auto", "controlled"):
            raise ValueError("mode must be 'auto' or 'controlled'")
        return v

    @field_validator("intent")
    @classmethod
    def validate_intent(cls, v):
        if v not in ("expand", "focus", "explore"):
            raise ValueError("intent must be 'expand', 'focus' or 'explore'")
        return v

    @field_validator("difficulty")
    @classmethod
    def validate_difficulty(cls, v):
        if v not in ("same", "easier", "harder"):
            raise ValueError("difficulty must be 'same', 'easier' or 'harder'")
        return v

    @field_validator("format")
    @classmethod
    def validate_format(cls, v):
        if v not in ("words", "phrases", "mixed"):
            raise ValueError("format must be 'words', 'phrases' or 'mixed'")
        return v

    @field_validator("topic")
    @classmethod
    def blank_topic(cls, v):
        return v.strip() or None if v else None


class RecommendationItemSchema(BaseModel):
    id: Optional[int] = None
    word_id: Optional[int] = None
    rec_word_id: Optional[int] = None
    original: str
    translation: str
    transcription: Optional[str] = None
    cefr_level: Optional[str] = None
    part_of_speech: Optional[str] = None
    phrase_flag: bool = False
    example_sentence_target: Optional[str] = None
    definition: Optional[str] = None
    definition_uk: Optional[str] = None
    reason_code: str = "cefr_fit"
    score: int = 50
    rank_position: int = 0
    source: str = "sql"  # sql | llm
    user_action: str = "pending"

    @property
    def reason_label(self) -> str:
        return REASON_LABELS.get(self.reason_code, DEFAULT_REASON_LABEL)

    def to_response(self) -> dict:
        data = self.model_dump(exclude={"source"})
        data["reason_label"] = self.reason_label
        return data


class RecommendationResult(BaseModel):
    run_id: Optional[int] = None
    items: List[RecommendationItemSchema]
    strategy: str
    pool_size: int
    quota_used: int
    quota_max: int
    quota_left: int
    plan: str = "free"

    def to_response(self) -> dict:
        data = self.model_dump(exclude={"items"})
        data["items"] = [item.to_response() for item in self.items]
        return data


class RecommendationActionRequest(BaseModel):
    item_id: int
    action: str
    list_id: Optional[int] = None

    @field_validator("action")
    @classmethod
    def validate_action(cls, v):
        if v not in ("added", "hidden", "skipped"):
            raise ValueError("action must be added|hidden|skipped")
        return v


class RecommendationActionResult(BaseModel):
    ok: bool = True
    word_id: Optional[int] = None
