from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lexum.constants.entitlements import PlanEntitlements, get_entitlements
from lexum.exceptions import DependencyError
from lexum.logging_config import setup_logger
from lexum.models.user_model import UserModel

logger = setup_logger(__name__, "user.log")


class UserRepository:
    def __init__(self, db: AsyncSession, user_id: int):
        self.db = db
        self.user_id = user_id

    async def get_user(self) -> Optional[UserModel]:
        try:
            result = await self.db.execute(select(UserModel).where(UserModel.id == self.user_id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"❌ User {self.user_id} read failed: {str(e)}")
            raise DependencyError("User read failed", e)

    async def get_entitlements(self) -> PlanEntitlements:
        """Entitlements of the user's subscription; unknown users get the free tier."""
        user = await self.get_user()
        return get_entitlements(user.subscription_plan if user else None)
