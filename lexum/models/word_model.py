from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, Boolean, Text, Float, UniqueConstraint
from sqlalchemy.orm import mapped_column, Mapped, relationship
from sqlalchemy.sql import func

from lexum.models.base_model import Base


class VocabularyItem(Base):
    """Canonical vocabulary shared by every learner."""
    __tablename__ = "words"
    __table_args__ = (
        UniqueConstraint("original", "source_lang", "target_lang", "translation",
                         name="uq_words_original_langs_translation"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    source_lang: Mapped[str] = mapped_column(String(8), nullable=False, index=True)
    target_lang: Mapped[str] = mapped_column(String(8), nullable=False, index=True)
    original: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    translation: Mapped[str] = mapped_column(String(255), nullable=False)
    transcription: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    cefr_level: Mapped[Optional[str]] = mapped_column(String(2), nullable=True, index=True)  # A1-C2
    part_of_speech: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    phrase_flag: Mapped[bool] = mapped_column(Boolean, default=False)
    example_sentence_target: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    definition: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    definition_uk: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # 1 = most common ... 5 = rare
    frequency_band: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    polysemy_level: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    morph_complexity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    translation_kind: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    difficulty_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    base_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    confidence_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    source: Mapped[str] = mapped_column(String(20), default="translated")  # translated | seeded | promoted

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f'VocabularyItem(id:{self.id}, original:{self.original}, {self.source_lang}->{self.target_lang}, cefr:{self.cefr_level})'


class WordList(Base):
    __tablename__ = "lists"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    words = relationship("ListWord", back_populates="list", cascade="all, delete-orphan")


class ListWord(Base):
    __tablename__ = "list_words"
    __table_args__ = (
        UniqueConstraint("list_id", "word_id", name="uq_list_words_list_word"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    list_id: Mapped[int] = mapped_column(ForeignKey("lists.id", ondelete="CASCADE"), nullable=False, index=True)
    word_id: Mapped[int] = mapped_column(ForeignKey("words.id", ondelete="CASCADE"), nullable=False, index=True)
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    list = relationship("WordList", back_populates="words")
    word = relationship("VocabularyItem")
