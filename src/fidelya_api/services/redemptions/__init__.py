"""Benefit redemption services."""

from .codes import BenefitCode, parse_benefit_code  # noqa: F401
from .engine import RedemptionService  # noqa: F401
from .errors import (  # noqa: F401
    BenefitUnavailableError,
    MemberNotFoundError,
    MemberStatusError,
    MerchantNotFoundError,
    NoEligibleBenefitError,
    RedemptionError,
    StatusGateKind,
)
from .history import (  # noqa: F401
    FailedAttemptRecorder,
    RedemptionHistoryPage,
    UsageHistoryRecorder,
    decode_history_cursor,
    encode_history_cursor,
)
from .policies import (  # noqa: F401
    DiscountPolicy,
    RedemptionPolicy,
    face_value_discount_policy,
    zero_discount_policy,
)
from .receipts import RedemptionReceipt, RedemptionRequest, RedemptionResult  # noqa: F401
from .stats import MemberRedemptionStats, RedemptionStatsService  # noqa: F401
