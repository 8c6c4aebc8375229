"""
Account Lockout Guard
Tracks failed authentication attempts and lock expiry on the user record.
"""

from datetime import datetime, timedelta
from typing import Optional

from flask import current_app
from sqlalchemy import and_, case, null, or_, update

from hr_ops import db
from hr_ops.buisness.core.unit_of_work import run_atomic
from hr_ops.data.core.user_info.user import User
from hr_ops.logger import get_logger
from hr_ops.utils.time_utils import to_naive_utc, utcnow_naive

logger = get_logger("hr_ops.buisness.core.lockout_guard")


class AccountLockoutGuard:
    """
    Failed-login bookkeeping.

    The whole increment-and-maybe-lock decision is one UPDATE evaluated by the
    store against the stored counter, so concurrent failures cannot both read
    the same pre-increment count.
    """

    def __init__(self, max_attempts: Optional[int] = None, lockout: Optional[timedelta] = None):
        self._max_attempts = max_attempts
        self._lockout = lockout

    @property
    def max_attempts(self) -> int:
        if self._max_attempts is not None:
            return self._max_attempts
        return int(current_app.config.get('MAX_FAILED_LOGIN_ATTEMPTS', 5))

    @property
    def lockout(self) -> timedelta:
        if self._lockout is not None:
            return self._lockout
        return timedelta(minutes=int(current_app.config.get('ACCOUNT_LOCKOUT_MINUTES', 120)))

    def record_failed_attempt(self, user: User, now: Optional[datetime] = None) -> User:
        """
        Count one failed authentication.

        An expired lock restarts the count at 1. Otherwise the count goes up by one,
        and reaching the threshold while not already locked sets the lock.
        A call while locked never extends the lock.
        """
        now = to_naive_utc(now) or utcnow_naive()
        users = User.__table__

        lock_expired = and_(users.c.lock_until.isnot(None), users.c.lock_until < now)
        not_locked = or_(users.c.lock_until.is_(None), users.c.lock_until <= now)
        reaches_threshold = users.c.login_attempts + 1 >= self.max_attempts

        statement = (
            update(users)
            .where(users.c.id == user.id)
            .values(
                login_attempts=case((lock_expired, 1), else_=users.c.login_attempts + 1),
                lock_until=case(
                    (lock_expired, null()),
                    (and_(reaches_threshold, not_locked), now + self.lockout),
                    else_=users.c.lock_until,
                ),
            )
        )

        run_atomic(
            lambda: db.session.execute(statement),
            action="record_failed_attempt",
            entity_id=user.username,
        )
        db.session.refresh(user)

        if self.is_locked(user, now):
            logger.warning(f"Account {user.username} locked until {user.lock_until.isoformat()} "
                           f"after {user.login_attempts} failed attempts")
        else:
            logger.info(f"Failed login for {user.username}, attempt {user.login_attempts}")
        return user

    @staticmethod
    def is_locked(user: User, now: Optional[datetime] = None) -> bool:
        now = to_naive_utc(now) or utcnow_naive()
        return user.lock_until is not None and user.lock_until > now

    def reset(self, user: User, now: Optional[datetime] = None) -> User:
        """Clear attempts and lock after a successful authentication"""
        now = to_naive_utc(now) or utcnow_naive()

        def apply():
            user.login_attempts = 0
            user.lock_until = None
            user.last_login = now
            return user

        run_atomic(apply, action="reset_login_attempts", entity_id=user.username)
        logger.info(f"Login attempts reset for {user.username}")
        return user
