from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, Boolean, Float, UniqueConstraint
from sqlalchemy.orm import mapped_column, Mapped
from sqlalchemy.sql import func

from lexum.models.base_model import Base


class UserWordProgress(Base):
    """SM-2 state plus the personal layer, one row per learner and word."""
    __tablename__ = "user_word_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "word_id", name="uq_user_word_progress_user_word"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    word_id: Mapped[int] = mapped_column(ForeignKey("words.id", ondelete="CASCADE"), nullable=False, index=True)

    ease_factor: Mapped[float] = mapped_column(Float, default=2.5)
    interval_days: Mapped[int] = mapped_column(Integer, default=0)
    repetitions: Mapped[int] = mapped_column(Integer, default=0)
    next_review: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    last_result: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    wrong_count: Mapped[int] = mapped_column(Integer, default=0)
    correct_count: Mapped[int] = mapped_column(Integer, default=0)
    personal_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    word_state: Mapped[str] = mapped_column(String(12), default="new")
    trend_direction: Mapped[str] = mapped_column(String(8), default="stable")

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f'UserWordProgress(user:{self.user_id}, word:{self.word_id}, reps:{self.repetitions}, next:{self.next_review})'


class PracticeEvent(Base):
    """Append-only answer log; drives weak-word detection and trends."""
    __tablename__ = "practice_events"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    word_id: Mapped[int] = mapped_column(ForeignKey("words.id", ondelete="CASCADE"), nullable=False, index=True)
    quality: Mapped[str] = mapped_column(String(10), nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)


class UserSkillProfile(Base):
    __tablename__ = "user_skill_profile"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    frequency_score: Mapped[int] = mapped_column(Integer, default=0)
    polysemy_score: Mapped[int] = mapped_column(Integer, default=0)
    morph_score: Mapped[int] = mapped_column(Integer, default=0)
    idiom_score: Mapped[int] = mapped_column(Integer, default=0)
    total_updates: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
