"""
Lifecycle service
The operations collaborators (routes, notification jobs, reports) call into.
Each one is a thin, stateless wrapper over the business contexts.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from hr_ops.buisness.assets.asset_context import AssetContext
from hr_ops.buisness.assets.depreciation import compute_current_value as depreciated_value
from hr_ops.buisness.core.identifier_allocator import IdentifierAllocator
from hr_ops.buisness.core.lockout_guard import AccountLockoutGuard
from hr_ops.buisness.core.unit_of_work import run_atomic
from hr_ops.buisness.requisitions.job_posting_context import JobPostingContext
from hr_ops.data.assets.asset import Asset
from hr_ops.data.core.user_info.user import User
from hr_ops.data.requisitions.job_posting import JobPosting


def allocate_identifier(entity_class: str, year: Optional[int] = None) -> str:
    """Consume and return the next identifier for entity_class"""
    return run_atomic(
        lambda: IdentifierAllocator.allocate(entity_class, year),
        action="allocate",
        entity_id=entity_class,
    )


def apply_job_posting_transition(entity: JobPosting, action: str, actor: User,
                                 comments: Optional[str] = None, **fields) -> JobPosting:
    return JobPostingContext(entity).apply_transition(action, actor, comments, **fields)


def apply_asset_transition(entity: Asset, action: str, actor: User,
                           reason: Optional[str] = None, **fields) -> Asset:
    return AssetContext(entity).apply_transition(action, actor, reason, **fields)


def compute_current_value(entity: Asset, as_of: Optional[datetime] = None) -> Optional[Decimal]:
    """Value of the asset at as_of, without persisting it"""
    return depreciated_value(entity.purchase_cost, entity.purchase_date, entity.depreciation_rate, as_of)


def record_failed_login(user: User, now: Optional[datetime] = None) -> User:
    return AccountLockoutGuard().record_failed_attempt(user, now)


def reset_login_attempts(user: User) -> User:
    return AccountLockoutGuard().reset(user)


def is_account_locked(user: User, as_of: Optional[datetime] = None) -> bool:
    return AccountLockoutGuard.is_locked(user, as_of)
