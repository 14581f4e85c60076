from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from travel_agency.models.affiliate import AffiliateStatus, CommissionStatus


class AffiliateBase(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    cpf: Optional[str] = None


class AffiliateCreate(AffiliateBase):
    pix_key: Optional[str] = None
    user_id: Optional[int] = None


class AffiliateSelfRegister(BaseModel):
    phone: Optional[str] = None
    cpf: Optional[str] = None
    pix_key: Optional[str] = None


class AffiliateUpdate(BaseModel):
    status: Optional[AffiliateStatus] = None
    pix_key: Optional[str] = None
    bank_account: Optional[str] = None
    # range is checked by the service so the error uses the JSON error body
    commission_rate: Optional[float] = None


class AffiliateResponse(AffiliateBase):
    id: int
    user_id: Optional[int] = None
    code: str
    commission_rate: float
    status: AffiliateStatus
    pix_key: Optional[str] = None
    bank_account: Optional[str] = None
    approved_at: Optional[datetime] = None
    total_sales: int
    total_earned: int
    total_bookings: int
    created_at: datetime

    class Config:
        from_attributes = True


class AffiliateListItem(AffiliateResponse):
    referrals_count: int = 0
    referrals_sales: int = 0
    referrals_commission: int = 0


class AffiliatePublic(BaseModel):
    id: int
    name: str
    code: str
    status: AffiliateStatus

    class Config:
        from_attributes = True


class ReferralResponse(BaseModel):
    id: int
    affiliate_id: int
    booking_id: Optional[int] = None
    package_title: str
    customer_name: Optional[str] = None
    sale_amount: int
    commission_amount: int
    commission_status: CommissionStatus
    commission_paid_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ReferralWithAffiliate(ReferralResponse):
    affiliate: AffiliatePublic


class ReferralStatusUpdate(BaseModel):
    referral_id: int
    status: str


class AffiliateStats(BaseModel):
    total_sales: int
    total_earned: int
    total_bookings: int
    total_referrals: int
    pending_commissions: int
    approved_commissions: int
    paid_commissions: int


class MonthlyStat(BaseModel):
    month: str
    sales: int
    commissions: int
    count: int


class TopPackage(BaseModel):
    title: str
    count: int
    total: int


class TierResponse(BaseModel):
    name: str
    min_sales: int
    max_sales: Optional[int] = None
    commission_rate: float
    bonus: int


class AffiliateStatsResponse(BaseModel):
    affiliate: AffiliatePublic
    stats: AffiliateStats
    tier: TierResponse
    monthly_stats: list[MonthlyStat]
    top_packages: list[TopPackage]
    recent_referrals: list[ReferralResponse]


class MyAffiliateStats(BaseModel):
    total_referrals: int
    pending_referrals: int
    approved_referrals: int
    paid_referrals: int
    pending_commission: int
    approved_commission: int
    paid_commission: int


class MyAffiliate(AffiliateResponse):
    stats: MyAffiliateStats
    referrals: list[ReferralResponse] = []


class MyAffiliateResponse(BaseModel):
    is_affiliate: bool
    data: Optional[MyAffiliate] = None
