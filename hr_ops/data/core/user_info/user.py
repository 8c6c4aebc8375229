import re

from hr_ops import db, login_manager
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from sqlalchemy.orm import deferred, validates
from hr_ops.buisness.core.data_insertion_mixin import DataInsertionMixin
from hr_ops.buisness.core.errors import ValidationFailure
from hr_ops.buisness.core.permissions import ROLES, permissions_for_role
from hr_ops.data.core.user_info.password_validator import PasswordValidator
from hr_ops.utils.time_utils import utcnow_naive

EMAIL_PATTERN = re.compile(r'^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$')


class User(UserMixin, DataInsertionMixin, db.Model):
    __tablename__ = 'users'
    _hidden_fields = frozenset({'password_hash'})

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.String(30), unique=True, nullable=True)
    username = db.Column(db.String(50), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    # Only the one-way digest is stored, and it is left out of default loads
    password_hash = deferred(db.Column(db.String(255), nullable=False))
    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)
    role = db.Column(db.String(30), nullable=False, index=True)
    permissions = db.Column(db.JSON, nullable=False, default=dict)
    department = db.Column(db.String(100), nullable=True, index=True)
    designation = db.Column(db.String(100), nullable=True)
    reporting_manager_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    last_login = db.Column(db.DateTime, nullable=True)

    # Security
    login_attempts = db.Column(db.Integer, default=0, nullable=False)
    lock_until = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow_naive)
    updated_at = db.Column(db.DateTime, default=utcnow_naive, onupdate=utcnow_naive)

    reporting_manager = db.relationship('User', remote_side=[id], foreign_keys=[reporting_manager_id])

    def __init__(self, role=None, password=None, **kwargs):
        super().__init__(**kwargs)
        if role is not None:
            self.set_role(role)
        if password is not None:
            self.set_password(password)

    @validates('username')
    def _validate_username(self, key, value):
        value = (value or '').strip()
        if not 3 <= len(value) <= 50:
            raise ValidationFailure("Username must be between 3 and 50 characters", entity_id=value or None)
        return value

    @validates('email')
    def _validate_email(self, key, value):
        value = (value or '').strip().lower()
        if not EMAIL_PATTERN.match(value):
            raise ValidationFailure("Please enter a valid email", entity_id=self.username)
        return value

    @validates('role')
    def _validate_role(self, key, value):
        if value not in ROLES:
            raise ValidationFailure(f"Invalid role specified: {value!r}", entity_id=self.username, action="set_role")
        return value

    def set_role(self, role):
        """Assign a role and rebuild the whole permission set from it"""
        self.role = role
        self.permissions = permissions_for_role(role)

    def has_permission(self, permission):
        return self.is_active is not False and bool((self.permissions or {}).get(permission))

    def set_password(self, password):
        is_valid, error_msg = PasswordValidator.validate(password)
        if not is_valid:
            raise ValidationFailure(error_msg, entity_id=self.username, action="set_password")
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if not password or not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    @classmethod
    def find_by_role(cls, role, active=True):
        return cls.query.filter_by(role=role, is_active=active).all()

    @classmethod
    def find_department_managers(cls, department):
        return cls.query.filter_by(department=department, role='manager', is_active=True).all()

    @classmethod
    def find_direct_reports(cls, manager_id, active=True):
        return cls.query.filter_by(reporting_manager_id=manager_id, is_active=active).order_by(cls.first_name).all()

    @classmethod
    def search(cls, text=None, role=None, department=None, is_active=True, limit=20, page=1):
        query = cls.query.filter(cls.is_active == is_active)
        if role:
            query = query.filter(cls.role == role)
        if department:
            query = query.filter(cls.department == department)
        if text:
            like = f"%{text.lower()}%"
            query = query.filter(db.or_(
                db.func.lower(cls.first_name).like(like),
                db.func.lower(cls.last_name).like(like),
                db.func.lower(cls.email).like(like),
                db.func.lower(cls.employee_id).like(like),
                db.func.lower(cls.department).like(like),
            ))
        return query.order_by(cls.first_name, cls.last_name, cls.id).limit(limit).offset((page - 1) * limit).all()

    def __repr__(self):
        return f'<User {self.username}>'


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))
