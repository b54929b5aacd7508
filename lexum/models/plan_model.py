from datetime import datetime, date as date_type
from typing import Optional

from sqlalchemy import String, DateTime, Date, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import mapped_column, Mapped, relationship
from sqlalchemy.sql import func

from lexum.models.base_model import Base
from lexum.models.word_model import VocabularyItem


class DailyPlan(Base):
    __tablename__ = "daily_plans"
    __table_args__ = (
        # Two concurrent "get today" calls race on insert; the loser re-reads
        UniqueConstraint("user_id", "date", name="uq_daily_plans_user_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    target_count: Mapped[int] = mapped_column(Integer, default=0)
    completed_count: Mapped[int] = mapped_column(Integer, default=0)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    items = relationship("DailyPlanItem", back_populates="plan", cascade="all, delete-orphan",
                         order_by="DailyPlanItem.order_index")


class DailyPlanItem(Base):
    __tablename__ = "daily_plan_items"
    __table_args__ = (
        UniqueConstraint("plan_id", "word_id", name="uq_daily_plan_items_plan_word"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    plan_id: Mapped[int] = mapped_column(ForeignKey("daily_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    word_id: Mapped[int] = mapped_column(ForeignKey("words.id", ondelete="CASCADE"), nullable=False)
    list_id: Mapped[Optional[int]] = mapped_column(ForeignKey("lists.id", ondelete="SET NULL"), nullable=True)
    slot_type: Mapped[str] = mapped_column(String(8), nullable=False)  # weak | due | new
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(10), default="pending")  # pending | completed | skipped
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    plan = relationship("DailyPlan", back_populates="items")
    word = relationship(VocabularyItem)
