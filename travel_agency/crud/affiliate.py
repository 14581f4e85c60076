import logging
from collections import OrderedDict
from datetime import datetime
from typing import Optional
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from travel_agency.core.config import settings
from travel_agency.core.exceptions import ConflictError, NotFoundError, ValidationFailedError
from travel_agency.models import as_utc, utcnow
from travel_agency.models.affiliate import Affiliate, AffiliateReferral, AffiliateStatus, CommissionStatus
from travel_agency.models.user import User
from travel_agency.schemas.affiliate import (AffiliateCreate, AffiliateResponse, AffiliateSelfRegister,
                                             AffiliateUpdate)
from travel_agency.services.commission import tier_for_sales
from travel_agency.services.text import generate_affiliate_code

logger = logging.getLogger(__name__)

STATS_MONTHS = 6


def _sum_commissions(referrals, *statuses) -> int:
    return sum(r.commission_amount for r in referrals if r.commission_status in statuses)


def _months_back(now: datetime, months: int) -> datetime:
    """First instant of the month `months` before now's month."""
    month_index = now.year * 12 + (now.month - 1) - months
    return now.replace(year=month_index // 12, month=month_index % 12 + 1, day=1,
                       hour=0, minute=0, second=0, microsecond=0)


class CRUDAffiliate:
    async def _unique_code(self, db: AsyncSession, name: str) -> str:
        code = generate_affiliate_code(name)
        while await db.scalar(select(Affiliate.id).where(Affiliate.code == code)) is not None:
            code = generate_affiliate_code(name)
        return code

    async def _with_referrals(self, db: AsyncSession, *conditions) -> Optional[Affiliate]:
        result = await db.execute(
            select(Affiliate)
            .options(selectinload(Affiliate.referrals))
            .where(*conditions)
            .execution_options(populate_existing=True))
        return result.scalars().first()

    async def list_affiliates(self, db: AsyncSession) -> list[dict]:
        totals_stmt = (select(AffiliateReferral.affiliate_id,
                              func.count(AffiliateReferral.id),
                              func.coalesce(func.sum(AffiliateReferral.sale_amount), 0),
                              func.coalesce(func.sum(AffiliateReferral.commission_amount), 0))
                       .group_by(AffiliateReferral.affiliate_id))
        totals = {row[0]: row[1:] for row in (await db.execute(totals_stmt)).all()}

        result = await db.execute(select(Affiliate).order_by(Affiliate.created_at.desc(), Affiliate.id.desc()))
        affiliates = []
        for affiliate in result.scalars().all():
            count, sales, commission = totals.get(affiliate.id, (0, 0, 0))
            affiliates.append({
                **AffiliateResponse.model_validate(affiliate).model_dump(),
                "referrals_count": count,
                "referrals_sales": int(sales),
                "referrals_commission": int(commission),
            })
        return affiliates

    async def lookup(self, db: AsyncSession, code: Optional[str] = None, email: Optional[str] = None) -> Affiliate:
        if not code and not email:
            raise ValidationFailedError("Affiliate code or email is required")
        conditions = []
        if code:
            conditions.append(Affiliate.code == code.strip().upper())
        if email:
            conditions.append(func.lower(Affiliate.email) == email.strip().lower())
        result = await db.execute(select(Affiliate).where(or_(*conditions)))
        affiliate = result.scalars().first()
        if affiliate is None:
            raise NotFoundError("Affiliate")
        return affiliate

    async def get_affiliate(self, db: AsyncSession, affiliate_id: int) -> Affiliate:
        affiliate = await db.get(Affiliate, affiliate_id)
        if affiliate is None:
            raise NotFoundError("Affiliate")
        return affiliate

    async def create_affiliate(self, db: AsyncSession, data: AffiliateCreate) -> Affiliate:
        email = str(data.email).lower()
        existing = await db.scalar(select(Affiliate.id).where(func.lower(Affiliate.email) == email))
        if existing is not None:
            raise ConflictError("Email already registered as an affiliate")

        affiliate = Affiliate(
            user_id=data.user_id,
            name=data.name.strip(),
            email=email,
            phone=data.phone or None,
            cpf=data.cpf or None,
            pix_key=data.pix_key or None,
            code=await self._unique_code(db, data.name),
            commission_rate=settings.DEFAULT_COMMISSION_RATE,
            status=AffiliateStatus.PENDING,
        )
        db.add(affiliate)
        await db.commit()
        await db.refresh(affiliate)
        logger.info("Affiliate %s signed up with code %s", affiliate.id, affiliate.code)
        return affiliate

    async def _find_for_user(self, db: AsyncSession, user: User) -> Optional[Affiliate]:
        return await self._with_referrals(
            db, or_(Affiliate.user_id == user.id, func.lower(Affiliate.email) == user.email.lower()))

    async def get_my_affiliate(self, db: AsyncSession, user: User) -> dict:
        affiliate = await self._find_for_user(db, user)
        if affiliate is None:
            return {"is_affiliate": False, "data": None}

        referrals = affiliate.referrals
        pending = [r for r in referrals if r.commission_status == CommissionStatus.PENDING]
        # paid commissions were approved first
        approved = [r for r in referrals if r.commission_status in (CommissionStatus.APPROVED, CommissionStatus.PAID)]
        paid = [r for r in referrals if r.commission_status == CommissionStatus.PAID]
        stats = {
            "total_referrals": len(referrals),
            "pending_referrals": len(pending),
            "approved_referrals": len(approved),
            "paid_referrals": len(paid),
            "pending_commission": sum(r.commission_amount for r in pending),
            "approved_commission": sum(r.commission_amount for r in approved),
            "paid_commission": sum(r.commission_amount for r in paid),
        }
        data = AffiliateResponse.model_validate(affiliate).model_dump()
        data.update(stats=stats, referrals=referrals)
        return {"is_affiliate": True, "data": data}

    async def register_me(self, db: AsyncSession, user: User, data: AffiliateSelfRegister) -> Affiliate:
        if await self._find_for_user(db, user) is not None:
            raise ConflictError("You are already registered as an affiliate")

        name = user.full_name or "AFILIADO"
        affiliate = Affiliate(
            user_id=user.id,
            name=name,
            email=user.email.lower(),
            phone=data.phone or user.phone,
            cpf=data.cpf or None,
            pix_key=data.pix_key or None,
            code=await self._unique_code(db, name),
            commission_rate=settings.DEFAULT_COMMISSION_RATE,
            status=AffiliateStatus.PENDING,
        )
        db.add(affiliate)
        await db.commit()
        await db.refresh(affiliate)
        logger.info("User %s registered as affiliate %s", user.id, affiliate.code)
        return affiliate

    async def get_stats(self, db: AsyncSession, code: Optional[str] = None, affiliate_id: Optional[int] = None) -> dict:
        if not code and affiliate_id is None:
            raise ValidationFailedError("Affiliate code or id is required")
        conditions = []
        if code:
            conditions.append(Affiliate.code == code.strip().upper())
        if affiliate_id is not None:
            conditions.append(Affiliate.id == affiliate_id)
        affiliate = await self._with_referrals(db, or_(*conditions))
        if affiliate is None:
            raise NotFoundError("Affiliate")

        referrals = affiliate.referrals
        since = _months_back(utcnow(), STATS_MONTHS)
        monthly = OrderedDict()
        for referral in sorted(referrals, key=lambda r: as_utc(r.created_at)):
            created_at = as_utc(referral.created_at)
            if created_at < since:
                continue
            month = monthly.setdefault(created_at.strftime("%Y-%m"), {"sales": 0, "commissions": 0, "count": 0})
            month["sales"] += referral.sale_amount
            month["commissions"] += referral.commission_amount
            month["count"] += 1

        packages = {}
        for referral in referrals:
            entry = packages.setdefault(referral.package_title, {"count": 0, "total": 0})
            entry["count"] += 1
            entry["total"] += referral.sale_amount
        top_packages = sorted(
            ({"title": title, **values} for title, values in packages.items()),
            key=lambda p: p["count"], reverse=True)[:5]

        return {
            "affiliate": affiliate,
            "stats": {
                "total_sales": affiliate.total_sales,
                "total_earned": affiliate.total_earned,
                "total_bookings": affiliate.total_bookings,
                "total_referrals": len(referrals),
                "pending_commissions": _sum_commissions(referrals, CommissionStatus.PENDING),
                "approved_commissions": _sum_commissions(referrals, CommissionStatus.APPROVED),
                "paid_commissions": _sum_commissions(referrals, CommissionStatus.PAID),
            },
            # informational, the rate charged stays the affiliate's own commission_rate
            "tier": tier_for_sales(affiliate.total_bookings).to_dict(),
            "monthly_stats": [{"month": month, **values} for month, values in monthly.items()],
            "top_packages": top_packages,
            "recent_referrals": referrals[:10],
        }

    async def update_affiliate(self, db: AsyncSession, affiliate_id: int, data: AffiliateUpdate) -> Affiliate:
        affiliate = await self.get_affiliate(db, affiliate_id)
        changes = data.model_dump(exclude_unset=True)
        rate = changes.get("commission_rate")
        if rate is not None and not 0 <= rate <= 100:
            raise ValidationFailedError("Commission rate must be between 0 and 100")

        if changes.get("status") == AffiliateStatus.ACTIVE and affiliate.status != AffiliateStatus.ACTIVE:
            affiliate.approved_at = utcnow()
        for field, value in changes.items():
            if field in ("status", "commission_rate") and value is None:
                continue
            setattr(affiliate, field, value)
        await db.commit()
        await db.refresh(affiliate)
        logger.info("Updated affiliate %s: %s", affiliate_id, sorted(changes))
        return affiliate

    async def delete_affiliate(self, db: AsyncSession, affiliate_id: int) -> None:
        affiliate = await self.get_affiliate(db, affiliate_id)
        referrals = await db.scalar(
            select(func.count(AffiliateReferral.id)).where(AffiliateReferral.affiliate_id == affiliate_id))
        if referrals:
            raise ValidationFailedError("Affiliate has referrals and cannot be deleted, suspend it instead")
        await db.delete(affiliate)
        await db.commit()
        logger.info("Deleted affiliate %s", affiliate_id)

    async def list_referrals(self,
                             db: AsyncSession,
                             status: Optional[str] = None,
                             affiliate_id: Optional[int] = None):
        stmt = select(AffiliateReferral).options(selectinload(AffiliateReferral.affiliate))
        if status:
            stmt = stmt.where(AffiliateReferral.commission_status == self._parse_commission_status(status))
        if affiliate_id is not None:
            stmt = stmt.where(AffiliateReferral.affiliate_id == affiliate_id)
        result = await db.execute(stmt.order_by(AffiliateReferral.created_at.desc(), AffiliateReferral.id.desc()))
        return result.scalars().all()

    def _parse_commission_status(self, status: str) -> CommissionStatus:
        try:
            return CommissionStatus(status.strip().lower())
        except ValueError:
            raise ValidationFailedError(f"Invalid commission status: {status}")

    async def update_referral_status(self, db: AsyncSession, referral_id: int, status: str) -> AffiliateReferral:
        new_status = self._parse_commission_status(status)
        try:
            result = await db.execute(
                select(AffiliateReferral)
                .where(AffiliateReferral.id == referral_id)
                .with_for_update()
                .execution_options(populate_existing=True))
            referral = result.scalar_one_or_none()
            if referral is None:
                raise NotFoundError("Referral")

            if new_status == CommissionStatus.PAID and referral.commission_status != CommissionStatus.PAID:
                affiliate = await db.get(Affiliate, referral.affiliate_id, with_for_update=True)
                affiliate.total_sales += referral.sale_amount
                affiliate.total_earned += referral.commission_amount
                affiliate.total_bookings += 1
                referral.commission_paid_at = utcnow()
                logger.info("Paid commission %s of referral %s to affiliate %s",
                            referral.commission_amount, referral.id, affiliate.code)
            referral.commission_status = new_status
            await db.commit()
            await db.refresh(referral)
        except Exception:
            await db.rollback()
            raise
        return referral


crud_affiliate = CRUDAffiliate()
