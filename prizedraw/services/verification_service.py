import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from prizedraw.models.types import KycStatus
from prizedraw.models.verification import IdentityVerification, MemberBankDetails

logger = logging.getLogger(__name__)

KYC_NOT_APPROVED = "Identity verification (KYC) not approved"
BANK_DETAILS_MISSING = "Bank account details not provided"
BANK_NOT_VERIFIED = "Bank account not verified by admin"


@dataclass
class VerificationStatus:
    kyc_approved: bool
    bank_details_exist: bool
    bank_verified: bool
    ready_to_claim: bool
    missing_requirements: list[str] = field(default_factory=list)


class VerificationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def close(self):
        await self.db.close()

    async def check_member_verification_status(self, user_id: str) -> VerificationStatus:
        identity_result = await self.db.execute(
            select(IdentityVerification)
            .where(IdentityVerification.user_id == user_id)
            .order_by(IdentityVerification.created_at.desc())
        )
        identity: IdentityVerification | None = identity_result.scalars().first()

        bank_result = await self.db.execute(
            select(MemberBankDetails).where(MemberBankDetails.user_id == user_id)
        )
        bank: MemberBankDetails | None = bank_result.scalars().first()

        kyc_approved = identity is not None and identity.status == KycStatus.APPROVED
        bank_details_exist = bool(
            bank
            and bank.account_holder_name
            and bank.bank_name
            and bank.account_number_last4
        )
        bank_verified = bool(bank and bank.is_verified)

        missing = []
        if not kyc_approved:
            missing.append(KYC_NOT_APPROVED)
        if not bank_details_exist:
            missing.append(BANK_DETAILS_MISSING)
        if not bank_verified:
            missing.append(BANK_NOT_VERIFIED)

        return VerificationStatus(
            kyc_approved=kyc_approved,
            bank_details_exist=bank_details_exist,
            bank_verified=bank_verified,
            ready_to_claim=kyc_approved and bank_details_exist and bank_verified,
            missing_requirements=missing,
        )
