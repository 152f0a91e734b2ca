from prizedraw.models.audit_log import AuditAction, AuditLog
from prizedraw.models.entry import PrizeDrawEntry
from prizedraw.models.member import CountrySetting, Membership, Profile
from prizedraw.models.notification import PrizeNotification
from prizedraw.models.prize_draw import Prize, PrizeDraw
from prizedraw.models.report import PrizeDrawReport
from prizedraw.models.verification import IdentityVerification, MemberBankDetails
from prizedraw.models.winner import PrizeDrawWinner

__all__ = [
    "AuditAction",
    "AuditLog",
    "CountrySetting",
    "IdentityVerification",
    "MemberBankDetails",
    "Membership",
    "Prize",
    "PrizeDraw",
    "PrizeDrawEntry",
    "PrizeDrawReport",
    "PrizeDrawWinner",
    "PrizeNotification",
    "Profile",
]
