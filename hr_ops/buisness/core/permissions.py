"""
Role to permission mapping

The permission set of a user is a pure function of its role. It is rebuilt from
scratch on every role change, never merged with the previous set.
"""

from typing import Dict

from hr_ops.buisness.core.errors import ValidationFailure


MANAGER = 'manager'
PROCUREMENT = 'procurement'
ASSET_TEAM = 'asset_team'
BRANCH_OPS = 'branch_ops'
ADMIN = 'admin'
IT_TEAM = 'it_team'

ROLES = (MANAGER, PROCUREMENT, ASSET_TEAM, BRANCH_OPS, ADMIN, IT_TEAM)

CAN_CREATE_JOBS = 'can_create_jobs'
CAN_APPROVE_JOBS = 'can_approve_jobs'
CAN_MANAGE_ASSETS = 'can_manage_assets'
CAN_VIEW_REPORTS = 'can_view_reports'
CAN_MANAGE_USERS = 'can_manage_users'
CAN_PROCESS_CLEARANCE = 'can_process_clearance'
CAN_ACCESS_PROCUREMENT = 'can_access_procurement'

PERMISSIONS = (
    CAN_CREATE_JOBS,
    CAN_APPROVE_JOBS,
    CAN_MANAGE_ASSETS,
    CAN_VIEW_REPORTS,
    CAN_MANAGE_USERS,
    CAN_PROCESS_CLEARANCE,
    CAN_ACCESS_PROCUREMENT,
)

ROLE_GRANTS = {
    ADMIN: set(PERMISSIONS),
    MANAGER: {CAN_CREATE_JOBS, CAN_APPROVE_JOBS, CAN_VIEW_REPORTS},
    PROCUREMENT: {CAN_ACCESS_PROCUREMENT, CAN_VIEW_REPORTS},
    ASSET_TEAM: {CAN_MANAGE_ASSETS, CAN_PROCESS_CLEARANCE, CAN_VIEW_REPORTS},
    BRANCH_OPS: {CAN_VIEW_REPORTS},
    IT_TEAM: {CAN_VIEW_REPORTS},
}


def permissions_for_role(role: str) -> Dict[str, bool]:
    """
    Build the complete permission set for a role.

    Every known permission is present in the result, granted or not.

    Raises:
        ValidationFailure: If the role is unknown
    """
    if role not in ROLE_GRANTS:
        raise ValidationFailure(f"Invalid role specified: {role!r}", action="set_role")
    granted = ROLE_GRANTS[role]
    return {permission: permission in granted for permission in PERMISSIONS}
