"""Content membership and permission engine."""

from cookshare.content.descriptor import EntityDescriptor
from cookshare.content.dialect import (
    enable_sqlite_foreign_keys,
    get_dialect,
    translate_constraint_errors,
    upsert_rows,
)
from cookshare.content.ledger import ContentLedger
from cookshare.content.membership import MembershipStore
from cookshare.content.permissions import PermissionEvaluator, decide_access
from cookshare.content.repository import EntityRepository
from cookshare.content.status import (
    LIST_STATUSES,
    READ_STATUSES,
    AccessStatus,
    MemberStatus,
    normalize_statuses,
)

__all__ = [
    "LIST_STATUSES",
    "READ_STATUSES",
    "AccessStatus",
    "ContentLedger",
    "EntityDescriptor",
    "EntityRepository",
    "MemberStatus",
    "MembershipStore",
    "PermissionEvaluator",
    "decide_access",
    "enable_sqlite_foreign_keys",
    "get_dialect",
    "normalize_statuses",
    "translate_constraint_errors",
    "upsert_rows",
]
