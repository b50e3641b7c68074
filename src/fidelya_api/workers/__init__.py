"""Background workers supporting async processing."""

from .membership_standing import MembershipStandingWorker

__all__ = ["MembershipStandingWorker"]
