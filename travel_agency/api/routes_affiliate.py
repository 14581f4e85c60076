from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from travel_agency.core.security import get_current_user, require_admin
from travel_agency.crud.affiliate import crud_affiliate
from travel_agency.db.session import get_db_session
from travel_agency.models.user import User
from travel_agency.schemas.affiliate import (AffiliateCreate, AffiliateListItem, AffiliatePublic, AffiliateResponse,
                                             AffiliateSelfRegister, AffiliateStatsResponse, AffiliateUpdate,
                                             MyAffiliateResponse, ReferralResponse, ReferralStatusUpdate,
                                             ReferralWithAffiliate, TierResponse)
from travel_agency.services.commission import COMMISSION_TIERS
from travel_agency.services.rate_limit import rate_limiter

router = APIRouter(
    prefix="/affiliates",
    tags=["affiliates"]
)

# static paths are declared before /{affiliate_id}


@router.get("", response_model=list[AffiliateListItem], dependencies=[Depends(require_admin)])
async def list_affiliates(db: AsyncSession = Depends(get_db_session)):
    return await crud_affiliate.list_affiliates(db)


@router.post("", response_model=AffiliateResponse, status_code=201,
             dependencies=[Depends(rate_limiter("affiliates"))])
async def create_affiliate(data: AffiliateCreate, db: AsyncSession = Depends(get_db_session)):
    return await crud_affiliate.create_affiliate(db, data)


@router.get("/lookup", response_model=AffiliatePublic)
async def lookup_affiliate(
        code: Optional[str] = None,
        email: Optional[str] = None,
        db: AsyncSession = Depends(get_db_session)):
    return await crud_affiliate.lookup(db, code=code, email=email)


@router.get("/me", response_model=MyAffiliateResponse)
async def get_my_affiliate(
        db: AsyncSession = Depends(get_db_session),
        user: User = Depends(get_current_user)):
    return await crud_affiliate.get_my_affiliate(db, user)


@router.post("/me", response_model=AffiliateResponse, status_code=201)
async def register_me(
        data: AffiliateSelfRegister,
        db: AsyncSession = Depends(get_db_session),
        user: User = Depends(get_current_user)):
    return await crud_affiliate.register_me(db, user, data)


@router.get("/stats", response_model=AffiliateStatsResponse)
async def get_affiliate_stats(
        code: Optional[str] = None,
        id: Optional[int] = None,
        db: AsyncSession = Depends(get_db_session)):
    return await crud_affiliate.get_stats(db, code=code, affiliate_id=id)


@router.get("/tiers", response_model=list[TierResponse])
async def get_tiers():
    return [tier.to_dict() for tier in COMMISSION_TIERS]


@router.get("/referrals", response_model=list[ReferralWithAffiliate], dependencies=[Depends(require_admin)])
async def list_referrals(
        status: Optional[str] = None,
        affiliate_id: Optional[int] = None,
        db: AsyncSession = Depends(get_db_session)):
    return await crud_affiliate.list_referrals(db, status=status, affiliate_id=affiliate_id)


@router.put("/referrals", response_model=ReferralResponse, dependencies=[Depends(require_admin)])
async def update_referral(data: ReferralStatusUpdate, db: AsyncSession = Depends(get_db_session)):
    return await crud_affiliate.update_referral_status(db, data.referral_id, data.status)


@router.get("/{affiliate_id}", response_model=AffiliateResponse, dependencies=[Depends(require_admin)])
async def get_affiliate(affiliate_id: int, db: AsyncSession = Depends(get_db_session)):
    return await crud_affiliate.get_affiliate(db, affiliate_id)


@router.patch("/{affiliate_id}", response_model=AffiliateResponse, dependencies=[Depends(require_admin)])
async def update_affiliate(affiliate_id: int, data: AffiliateUpdate, db: AsyncSession = Depends(get_db_session)):
    return await crud_affiliate.update_affiliate(db, affiliate_id, data)


@router.delete("/{affiliate_id}", dependencies=[Depends(require_admin)])
async def delete_affiliate(affiliate_id: int, db: AsyncSession = Depends(get_db_session)):
    await crud_affiliate.delete_affiliate(db, affiliate_id)
    return {"message": "Affiliate deleted"}
