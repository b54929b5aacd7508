from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, Boolean, Text, UniqueConstraint
from sqlalchemy.orm import mapped_column, Mapped, relationship
from sqlalchemy.sql import func

from lexum.models.base_model import Base


class RecommendationRun(Base):
    __tablename__ = "recommendation_runs"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    source_lang: Mapped[str] = mapped_column(String(8), nullable=False)
    target_lang: Mapped[str] = mapped_column(String(8), nullable=False)
    mode: Mapped[str] = mapped_column(String(12), default="auto")  # auto | controlled
    intent: Mapped[Optional[str]] = mapped_column(String(12), nullable=True)
    difficulty: Mapped[Optional[str]] = mapped_column(String(12), nullable=True)
    topic: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    format: Mapped[Optional[str]] = mapped_column(String(12), nullable=True)
    requested_count: Mapped[int] = mapped_column(Integer, nullable=False)
    strategy: Mapped[str] = mapped_column(String(8), nullable=False)  # sql | hybrid | llm
    pool_size: Mapped[int] = mapped_column(Integer, default=0)
    sql_count: Mapped[int] = mapped_column(Integer, default=0)
    llm_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    items = relationship("RecommendationItem", back_populates="run", cascade="all, delete-orphan")


class RecommendationCandidateWord(Base):
    """Generated word awaiting acceptance; promoted into `words` when a learner adds it."""
    __tablename__ = "recommendation_words"
    __table_args__ = (
        UniqueConstraint("source_lang", "target_lang", "original", name="uq_recommendation_words_langs_original"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    source_lang: Mapped[str] = mapped_column(String(8), nullable=False)
    target_lang: Mapped[str] = mapped_column(String(8), nullable=False)
    original: Mapped[str] = mapped_column(String(255), nullable=False)
    translation: Mapped[str] = mapped_column(String(255), nullable=False)
    transcription: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    cefr_level: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
    part_of_speech: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    phrase_flag: Mapped[bool] = mapped_column(Boolean, default=False)
    example_sentence_target: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    definition: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    definition_uk: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    trust_level: Mapped[str] = mapped_column(String(12), default="provisional")
    add_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class RecommendationItem(Base):
    __tablename__ = "recommendation_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    run_id: Mapped[int] = mapped_column(ForeignKey("recommendation_runs.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Exactly one of word_id / rec_word_id is set until a provisional word is promoted
    word_id: Mapped[Optional[int]] = mapped_column(ForeignKey("words.id", ondelete="SET NULL"), nullable=True, index=True)
    rec_word_id: Mapped[Optional[int]] = mapped_column(ForeignKey("recommendation_words.id", ondelete="SET NULL"), nullable=True)

    source_lang: Mapped[str] = mapped_column(String(8), nullable=False)
    target_lang: Mapped[str] = mapped_column(String(8), nullable=False)
    original: Mapped[str] = mapped_column(String(255), nullable=False)
    translation: Mapped[str] = mapped_column(String(255), nullable=False)
    transcription: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    cefr_level: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
    part_of_speech: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    phrase_flag: Mapped[bool] = mapped_column(Boolean, default=False)
    example_sentence_target: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    definition: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    definition_uk: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    reason_code: Mapped[str] = mapped_column(String(20), default="cefr_fit")
    score: Mapped[int] = mapped_column(Integer, default=50)
    rank_position: Mapped[int] = mapped_column(Integer, default=0)

    user_action: Mapped[str] = mapped_column(String(10), default="pending")  # pending | added | hidden | skipped
    actioned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    added_to_list_id: Mapped[Optional[int]] = mapped_column(ForeignKey("lists.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)

    run = relationship("RecommendationRun", back_populates="items")
