"""Service factory for consistent service instantiation patterns."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from prizedraw.services.audit_service import AuditService
from prizedraw.services.draw_report_service import DrawReportService
from prizedraw.services.membership_service import MembershipService
from prizedraw.services.notification_service import NotificationService
from prizedraw.services.prize_claim_service import PrizeClaimService
from prizedraw.services.prize_draw_service import PrizeDrawService
from prizedraw.services.prize_draw_winner_service import PrizeDrawWinnerService
from prizedraw.services.verification_service import VerificationService

logger = logging.getLogger(__name__)


class ServiceFactory:
    """Factory for creating per-session service instances."""

    @staticmethod
    def create_prize_draw_service(session: AsyncSession) -> PrizeDrawService:
        return PrizeDrawService(session)

    @staticmethod
    def create_winner_service(session: AsyncSession) -> PrizeDrawWinnerService:
        return PrizeDrawWinnerService(session)

    @staticmethod
    def create_claim_service(session: AsyncSession) -> PrizeClaimService:
        return PrizeClaimService(session)

    @staticmethod
    def create_verification_service(session: AsyncSession) -> VerificationService:
        return VerificationService(session)

    @staticmethod
    def create_notification_service(session: AsyncSession) -> NotificationService:
        return NotificationService(session)

    @staticmethod
    def create_report_service(session: AsyncSession) -> DrawReportService:
        return DrawReportService(session)

    @staticmethod
    def create_audit_service(session: AsyncSession) -> AuditService:
        return AuditService(session)

    @staticmethod
    def create_membership_service(session: AsyncSession) -> MembershipService:
        return MembershipService(session)


# Convenience functions for cleaner imports
def create_prize_draw_service(session: AsyncSession) -> PrizeDrawService:
    """Create PrizeDrawService instance."""
    return ServiceFactory.create_prize_draw_service(session)


def create_winner_service(session: AsyncSession) -> PrizeDrawWinnerService:
    """Create PrizeDrawWinnerService instance."""
    return ServiceFactory.create_winner_service(session)


def create_claim_service(session: AsyncSession) -> PrizeClaimService:
    """Create PrizeClaimService instance."""
    return ServiceFactory.create_claim_service(session)


def create_notification_service(session: AsyncSession) -> NotificationService:
    """Create NotificationService instance."""
    return ServiceFactory.create_notification_service(session)


def create_report_service(session: AsyncSession) -> DrawReportService:
    """Create DrawReportService instance."""
    return ServiceFactory.create_report_service(session)
