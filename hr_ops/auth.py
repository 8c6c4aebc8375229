from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from hr_ops import limiter, login_manager
from hr_ops.data.core.user_info.user import User
from hr_ops.logger import get_logger
from hr_ops.services.lifecycle_service import (
    is_account_locked,
    record_failed_login,
    reset_login_attempts,
)
from hr_ops.utils.logging_sanitizer import sanitize_dict

logger = get_logger("hr_ops.auth")
auth = Blueprint('auth', __name__)


def _refuse(message, status):
    return jsonify({'success': False, 'message': message}), status


@login_manager.unauthorized_handler
def unauthorized():
    return _refuse('Authentication required', 401)


@auth.route('/login', methods=['POST'])
@limiter.limit("5 per minute")
def login():
    payload = request.get_json(silent=True) or {}
    logger.debug(f"Login attempt: {sanitize_dict(payload)}")

    username = (payload.get('username') or '').strip()
    password = payload.get('password')
    if not username or not password:
        logger.warning(f"Login attempt with missing credentials for username: {username}")
        return _refuse('Please enter both username and password', 400)

    user = User.query.filter_by(username=username).first()
    if user is None:
        logger.warning(f"Failed login attempt for unknown username: {username}")
        return _refuse('Invalid username or password', 401)

    # A locked account is refused before the password is looked at
    if is_account_locked(user):
        logger.warning(f"Login attempt for locked account: {username}")
        return _refuse('Account is temporarily locked due to too many failed login attempts', 423)

    if not user.is_active:
        logger.warning(f"Login attempt for disabled account: {username}")
        return _refuse('Account is disabled', 403)

    if not user.check_password(password):
        record_failed_login(user)
        logger.warning(f"Failed login attempt for username: {username}")
        return _refuse('Invalid username or password', 401)

    reset_login_attempts(user)
    login_user(user)
    logger.info(f"Successful login for user: {username}")
    return jsonify({'success': True, 'user': user.to_dict(include_audit_fields=False)})


@auth.route('/logout', methods=['POST'])
@login_required
def logout():
    username = current_user.username
    logout_user()
    logger.info(f"User logged out: {username}")
    return jsonify({'success': True})
