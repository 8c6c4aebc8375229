"""
User Context (Core)
Provides a clean interface for managing user operations.

Handles:
- User creation with role-derived permissions
- Role changes (permission set rebuilt, never merged)
- Deactivation
"""

from typing import Optional

from hr_ops import db
from hr_ops.buisness.core.errors import ValidationFailure
from hr_ops.buisness.core.unit_of_work import run_atomic
from hr_ops.buisness.core.validation import to_user_id
from hr_ops.data.core.user_info.user import User
from hr_ops.logger import get_logger

logger = get_logger("hr_ops.buisness.core.user_context")


class UserContext:
    """
    Core context manager for user operations.
    """

    def __init__(self, user: User):
        self._user = user

    @property
    def user(self) -> User:
        """Get the User instance"""
        return self._user

    @property
    def user_id(self) -> int:
        return self._user.id

    @classmethod
    def create(
        cls,
        username: str,
        email: str,
        password: str,
        role: str,
        first_name: str,
        last_name: str,
        commit: bool = True,
        **kwargs
    ) -> 'UserContext':
        """
        Create a new user.

        Args:
            username: Username (must be unique)
            email: Email address (must be unique)
            password: Plain text password (only its hash is stored)
            role: One of the known roles; permissions are derived from it
            first_name: Given name
            last_name: Family name
            commit: Whether to commit the transaction (default: True)
            **kwargs: Additional user fields (department, designation, employee_id, reporting_manager_id)

        Raises:
            ValidationFailure: If username or email already exists, or a field is invalid
        """
        # Compare in the form the model validators store
        username = username.strip() if isinstance(username, str) else username
        email = email.strip().lower() if isinstance(email, str) else email
        if User.query.filter_by(username=username).first():
            raise ValidationFailure(f"Username '{username}' already exists", entity_id=username, action="create")
        if User.query.filter_by(email=email).first():
            raise ValidationFailure(f"Email '{email}' already exists", entity_id=username, action="create")
        if kwargs.get('reporting_manager_id') is not None:
            manager_id = to_user_id(kwargs['reporting_manager_id'], 'Reporting manager', entity_id=username, action="create")
            if db.session.get(User, manager_id) is None:
                raise ValidationFailure(f"Reporting manager {manager_id} not found", entity_id=username, action="create")
            kwargs['reporting_manager_id'] = manager_id

        user = User(
            username=username,
            email=email,
            first_name=first_name,
            last_name=last_name,
            role=role,
            password=password,
            **kwargs
        )

        if commit:
            run_atomic(lambda: db.session.add(user), action="create", entity_id=username)
        else:
            db.session.add(user)
        logger.info(f"Created user {username} with role {role}")
        return cls(user)

    def change_role(self, role: str, commit: bool = True) -> User:
        """Assign a new role; the permission set is recomputed from scratch"""
        previous = self._user.role

        def apply():
            self._user.set_role(role)
            return self._user

        if commit:
            run_atomic(apply, action="set_role", entity_id=self._user.username)
        else:
            apply()
        logger.info(f"Role of {self._user.username} changed from {previous} to {role}")
        return self._user

    def deactivate(self, commit: bool = True) -> User:
        def apply():
            self._user.is_active = False
            return self._user

        if commit:
            run_atomic(apply, action="deactivate", entity_id=self._user.username)
        else:
            apply()
        logger.info(f"Deactivated user {self._user.username}")
        return self._user

    @staticmethod
    def find(username: str) -> Optional[User]:
        return User.query.filter_by(username=username).first()
