"""Domain models for mp_referral."""

from dataclasses import dataclass


@dataclass
class ReferralStats:
    successful_referrals: int
    total_alba_from_referrals: int
    referral_bonus_amount: int
