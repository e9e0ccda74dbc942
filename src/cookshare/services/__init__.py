"""Caller-side rules on top of the repositories."""

from cookshare.services.membership import MembershipWorkflow

__all__ = ["MembershipWorkflow"]
