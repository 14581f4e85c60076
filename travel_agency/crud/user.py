import logging
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from travel_agency.models.user import User, UserRole

logger = logging.getLogger(__name__)


class CRUDUser:
    async def get_by_external_id(self, db: AsyncSession, external_id: str):
        result = await db.execute(select(User).where(User.external_id == external_id))
        return result.scalar_one_or_none()

    async def get_or_create_from_claims(self, db: AsyncSession, claims: dict) -> User:
        """Local user for a token's subject, provisioned on first sight."""
        external_id = str(claims["sub"])
        user = await self.get_by_external_id(db, external_id)
        if user is not None:
            return user

        user = User(
            external_id=external_id,
            email=claims.get("email") or f"{external_id}@users.invalid",
            first_name=claims.get("first_name"),
            last_name=claims.get("last_name"),
            role=UserRole.USER,
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            # another request provisioned the same subject first
            await db.rollback()
            return await self.get_by_external_id(db, external_id)
        await db.refresh(user)
        logger.info("Provisioned user %s (%s)", user.id, user.email)
        return user


crud_user = CRUDUser()
