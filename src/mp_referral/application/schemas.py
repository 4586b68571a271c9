"""Pydantic schemas for mp_referral API."""

import uuid

from pydantic import BaseModel

from src.mp_gateway.user.models import UserAccount
from src.mp_referral.domain.models import ReferralStats


class BindReferralRequest(BaseModel):
    referrer_id: uuid.UUID


class BindReferralResponse(BaseModel):
    user_id: str
    referred_by: str | None
    bonus_paid: bool

    @classmethod
    def from_domain(cls, user: UserAccount, bonus_paid: bool) -> "BindReferralResponse":
        return cls(user_id=user.id, referred_by=user.referred_by, bonus_paid=bonus_paid)


class ReferralStatsResponse(BaseModel):
    successful_referrals: int
    total_alba_from_referrals: int
    referral_bonus_amount: int

    @classmethod
    def from_domain(cls, stats: ReferralStats) -> "ReferralStatsResponse":
        return cls(
            successful_referrals=stats.successful_referrals,
            total_alba_from_referrals=stats.total_alba_from_referrals,
            referral_bonus_amount=stats.referral_bonus_amount,
        )
