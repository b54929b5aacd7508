# models/ai_models.py
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional, Dict


REASON_CODES = ("cefr_fit", "topic_match", "high_frequency", "phrase_needed",
                "gap_fill", "explore", "llm_curated")


class GenerationRequest(BaseModel):
    source_lang: str
    target_lang: str
    cefr_levels: List[str]
    count: int = Field(ge=0)
    exclude_originals: List[str] = []
    seed_words: List[str] = []
    topic: Optional[str] = None
    format: str = "mixed"  # words | phrases | mixed
    intent: Optional[str] = None  # only sent in controlled mode


class GeneratedWord(BaseModel):
    original: str
    translation: str
    transcription: Optional[str] = None
    cefr_level: Optional[str] = None
    part_of_speech: Optional[str] = None
    phrase_flag: bool = False
    example_sentence_target: Optional[str] = None
    definition: Optional[str] = None
    definition_uk: Optional[str] = None
    reason_code: str = "llm_curated"

    @field_validator("original")
    @classmethod
    def normalize_original(cls, v):
        v = str(v).strip().lower()
        if not v:
            raise ValueError("original must not be empty")
        return v

    @field_validator("translation")
    @classmethod
    def normalize_translation(cls, v):
        v = str(v).strip()
        if not v:
            raise ValueError("translation must not be empty")
        return v

    @field_validator("reason_code", mode="before")
    @classmethod
    def known_reason(cls, v):
        if not v or str(v).strip() not in REASON_CODES:
            return "llm_curated"
        return str(v).strip()

    @field_validator("phrase_flag", mode="before")
    @classmethod
    def coerce_flag(cls, v):
        return bool(v)


class DeepSeekRequest(BaseModel):
    model: str = "deepseek-chat"
    messages: List[Dict[str, str]]
    temperature: float = 0.7
    max_tokens: int = 2000
    stream: bool = False
