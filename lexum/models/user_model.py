from datetime import datetime, date
from typing import Optional

from sqlalchemy import String, DateTime, Date, Integer
from sqlalchemy.orm import mapped_column, Mapped
from sqlalchemy.sql import func

from lexum.models.base_model import Base


class UserModel(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)

    username: Mapped[str] = mapped_column(nullable=True, unique=True, index=True)
    email: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # free | pro, resolved to PlanEntitlements per request
    subscription_plan: Mapped[str] = mapped_column(String(20), default="free", server_default="free")

    # Daily recommendation quota, reset when rec_reset_date is not today (UTC)
    rec_requests_today: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    rec_reset_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    def __repr__(self):
        return f'UserModel(id:{self.id}, username:{self.username}, plan: {self.subscription_plan})'
