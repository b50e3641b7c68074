"""Membership consistency, linking and standing services."""

from .consistency import (  # noqa: F401
    BatchSyncResult,
    CorrectedStatus,
    MembershipConsistencyService,
    MembershipStatusReport,
    MembershipSummary,
    SyncError,
    determine_correct_status,
    is_status_consistent,
    is_unrepairable,
)
from .linking import AccountLinkService, LinkTargetNotFoundError, MembershipLinkError  # noqa: F401
from .standing import (  # noqa: F401
    MembershipStandingService,
    StandingDiagnosis,
    StandingDiscrepancy,
    StandingSweepResult,
    compute_standing,
)
