"""SQLAlchemy models package."""

from .account import Account, AccountRole, AccountStatus  # noqa: F401
from .customer import MerchantCustomer, merchant_customer_key  # noqa: F401
from .membership import Association, MemberProfile, MemberStatus, MembershipStanding  # noqa: F401
from .merchant import AccessScope, Benefit, BenefitStatus, DiscountKind, Merchant  # noqa: F401
from .notification import NotificationTrigger, NotificationTriggerStatus  # noqa: F401
from .redemption import (  # noqa: F401
    FailedRedemptionAttempt,
    Redemption,
    RedemptionOutcome,
    UsageHistoryEntry,
)
