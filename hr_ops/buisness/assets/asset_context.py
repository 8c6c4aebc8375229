"""
Asset Context
Provides a clean interface for managing the hardware lifecycle of an Asset.

Handles:
- Creation with an allocated ASSET identifier and a stored current value
- Status transitions with their assignment and disposal side fields
- Condition updates, maintenance records and financial changes
"""

from typing import Any, Dict, List, Optional, Union

from flask import current_app

from hr_ops import db
from hr_ops.buisness.assets.depreciation import compute_current_value
from hr_ops.buisness.assets.state_machine import AssetStateMachine
from hr_ops.buisness.core.errors import Forbidden, InvalidTransition, ValidationFailure
from hr_ops.buisness.core.identifier_allocator import IdentifierAllocator
from hr_ops.buisness.core.permissions import CAN_MANAGE_ASSETS
from hr_ops.buisness.core.unit_of_work import run_atomic
from hr_ops.buisness.core.validation import optional_text, require_text, to_datetime, to_decimal
from hr_ops.data.assets.asset import (
    CONDITION_RATINGS,
    DISPOSAL_METHODS,
    MAINTENANCE_TYPES,
    Asset,
    AssetMaintenanceRecord,
    AssetStatusEntry,
)
from hr_ops.data.core.user_info.user import User
from hr_ops.logger import get_logger
from hr_ops.utils.time_utils import utcnow_naive

logger = get_logger("hr_ops.buisness.assets.asset_context")

CREATE_FIELDS = frozenset({
    'asset_type', 'brand', 'model_name', 'serial_number', 'tags',
    'purchase_date', 'purchase_cost', 'currency', 'depreciation_rate',
    'vendor_name', 'warranty_expiry', 'condition_rating', 'current_location',
})

ACTION_FIELDS = {
    AssetStateMachine.ASSIGN: frozenset({'assignee', 'location'}),
    AssetStateMachine.RETURN: frozenset({'condition', 'location'}),
    AssetStateMachine.SEND_TO_MAINTENANCE: frozenset({'location'}),
    AssetStateMachine.COMPLETE_MAINTENANCE: frozenset({'location'}),
    AssetStateMachine.MARK_DAMAGED: frozenset(),
    AssetStateMachine.DISPOSE: frozenset({'method', 'value', 'notes'}),
    AssetStateMachine.MARK_LOST: frozenset(),
    AssetStateMachine.RECOVER: frozenset({'location'}),
    AssetStateMachine.SHIP: frozenset(),
    AssetStateMachine.RECEIVE: frozenset({'location'}),
}

_UNSET = object()


def require_asset_manager(actor, action, asset=None):
    if actor is None or not actor.has_permission(CAN_MANAGE_ASSETS):
        raise Forbidden(
            f"Actor {getattr(actor, 'username', None)!r} is not permitted to manage assets",
            entity_id=asset.asset_id if asset is not None else None,
            action=action,
            current_status=asset.status if asset is not None else None,
        )


class AssetContext:
    """
    Context for one Asset.

    Transitions go through AssetStateMachine; status, side fields and the
    status history entry are committed together.
    """

    state_machine = AssetStateMachine

    def __init__(self, asset: Union[Asset, int, str]):
        """
        Args:
            asset: Asset instance, primary key, or ASSET identifier
        """
        if isinstance(asset, Asset):
            self._asset = asset
        else:
            if isinstance(asset, int):
                found = db.session.get(Asset, asset)
            else:
                found = Asset.query.filter_by(asset_id=asset).first()
            if found is None:
                raise ValidationFailure("Asset not found", entity_id=str(asset))
            self._asset = found

    @property
    def asset(self) -> Asset:
        return self._asset

    @property
    def asset_id(self) -> str:
        return self._asset.asset_id

    @property
    def status(self) -> str:
        return self._asset.status

    @property
    def status_history(self) -> List[AssetStatusEntry]:
        return list(self._asset.status_history)

    @property
    def maintenance_history(self) -> List[AssetMaintenanceRecord]:
        return list(self._asset.maintenance_history)

    def allowed_actions(self):
        return self.state_machine.allowed_actions(self.status)

    @classmethod
    def create(cls, actor: User, year: Optional[int] = None, **fields) -> 'AssetContext':
        """
        Register a new asset as available.

        Raises:
            Forbidden: If the actor cannot manage assets
            ValidationFailure: For unknown or invalid fields, or a duplicate serial number
            ResourceUnavailable: If no identifier could be allocated
        """
        require_asset_manager(actor, "create")
        unknown = set(fields) - CREATE_FIELDS
        if unknown:
            raise ValidationFailure(f"Unknown asset fields: {', '.join(sorted(unknown))}", action="create")

        values = dict(fields)
        if not values.get('asset_type'):
            raise ValidationFailure("Asset type is required", action="create")
        values.setdefault('currency', current_app.config.get('DEFAULT_CURRENCY', 'INR'))
        if values.get('depreciation_rate') is None:
            values['depreciation_rate'] = current_app.config.get('DEFAULT_DEPRECIATION_RATE', 20)
        values['purchase_cost'] = to_decimal(values.get('purchase_cost'), 'Purchase cost', action="create", minimum=0)
        values['depreciation_rate'] = to_decimal(values['depreciation_rate'], 'Depreciation rate', action="create",
                                                 minimum=0, maximum=100)
        values['purchase_date'] = to_datetime(values.get('purchase_date'), 'Purchase date', action="create")
        values['warranty_expiry'] = to_datetime(values.get('warranty_expiry'), 'Warranty expiry', action="create")
        values['serial_number'] = optional_text(values.get('serial_number'), 'Serial number', 100, action="create")
        if values['serial_number'] and Asset.query.filter_by(serial_number=values['serial_number']).first():
            raise ValidationFailure(f"Serial number {values['serial_number']!r} is already registered", action="create")
        values['current_value'] = compute_current_value(
            values['purchase_cost'], values['purchase_date'], values['depreciation_rate'])

        def create_asset():
            # Allocation is the first write of the transaction
            asset_id = IdentifierAllocator.allocate('Asset', year)
            asset = Asset.from_dict(
                dict(values, asset_id=asset_id, status=AssetStateMachine.AVAILABLE),
                user_id=actor.id,
            )
            db.session.add(asset)
            return asset

        asset = run_atomic(create_asset, action="create", entity_id='Asset')
        logger.info(f"Registered asset {asset.asset_id} ({asset.asset_type}) by {actor.username}")
        return cls(asset)

    def apply_transition(self, action: str, actor: User, reason: Optional[str] = None, **fields) -> Asset:
        """
        Apply a lifecycle action to the asset.

        Args:
            action: One of the AssetStateMachine actions
            actor: User performing the action
            reason: Recorded in status history; assign and return have defaults
            **fields: Action inputs (assignee, location, condition, method, value, notes)

        Returns:
            The updated Asset, already committed
        """
        asset = self._asset

        def transition():
            current = asset.status
            target = self.state_machine.validate(current, action, actor, entity_id=asset.asset_id)
            now = utcnow_naive()
            side_fields, history_reason = self._side_fields(action, actor, reason, fields, current, now)

            asset.status = target
            for key, value in side_fields.items():
                setattr(asset, key, value)
            asset.updated_by_id = actor.id
            asset.status_history.append(AssetStatusEntry(
                action=action,
                status=target,
                previous_status=current,
                changed_by_id=actor.id,
                changed_at=now,
                reason=history_reason,
            ))
            return current, target

        previous, target = run_atomic(
            transition,
            action=action,
            entity_id=asset.asset_id,
            status_of=lambda: asset.status,
        )
        logger.info(f"Asset {asset.asset_id}: {previous} -> {target} via {action} by {actor.username}",
                    extra={"entity_id": asset.asset_id, "action": action, "status": target})
        return asset

    def _side_fields(self, action, actor, reason, fields, current, now):
        asset_id = self._asset.asset_id
        context = dict(entity_id=asset_id, action=action, current_status=current)
        unknown = set(fields) - ACTION_FIELDS[action]
        if unknown:
            raise ValidationFailure(f"Unexpected fields for {action}: {', '.join(sorted(unknown))}", **context)
        reason = optional_text(reason, 'Reason', 500, **context)
        location = optional_text(fields.get('location'), 'Location', 200, **context)
        side = {'current_location': location} if location else {}
        sm = self.state_machine

        if action == sm.ASSIGN:
            assignee = optional_text(fields.get('assignee'), 'Assignee', 50, **context)
            if not assignee:
                raise ValidationFailure("An assignee is required", **context)
            side.update(assigned_to_ref=assignee, assigned_by_id=actor.id, assigned_date=now)
            return side, reason or f"Assigned to associate: {assignee}"

        if action == sm.RETURN:
            condition = fields.get('condition') or 'good'
            if condition not in CONDITION_RATINGS:
                raise ValidationFailure(f"Invalid condition rating: {condition!r}", **context)
            side.update(assigned_to_ref=None, assigned_by_id=None, assigned_date=None, condition_rating=condition)
            return side, reason or f"Asset returned in {condition} condition"

        if action == sm.MARK_DAMAGED:
            side['condition_rating'] = 'damaged'
            return side, reason

        if action == sm.DISPOSE:
            method = fields.get('method')
            if method is not None and method not in DISPOSAL_METHODS:
                raise ValidationFailure(f"Invalid disposal method: {method!r}", **context)
            side.update(
                disposal_method=method,
                disposal_value=to_decimal(fields.get('value'), 'Disposal value', minimum=0, **context),
                disposal_notes=optional_text(fields.get('notes'), 'Disposal notes', 1000, **context),
                disposed_by_id=actor.id,
                disposal_date=now,
            )
            return side, reason

        return side, reason

    def assign(self, actor: User, assignee: str, location: Optional[str] = None, reason: Optional[str] = None) -> Asset:
        return self.apply_transition(AssetStateMachine.ASSIGN, actor, reason, assignee=assignee, location=location)

    def return_asset(self, actor: User, condition: str = 'good', location: Optional[str] = None,
                     reason: Optional[str] = None) -> Asset:
        return self.apply_transition(AssetStateMachine.RETURN, actor, reason, condition=condition, location=location)

    def send_to_maintenance(self, actor: User, reason: Optional[str] = None) -> Asset:
        return self.apply_transition(AssetStateMachine.SEND_TO_MAINTENANCE, actor, reason)

    def mark_damaged(self, actor: User, reason: Optional[str] = None) -> Asset:
        return self.apply_transition(AssetStateMachine.MARK_DAMAGED, actor, reason)

    def dispose(self, actor: User, method: Optional[str] = None, value=None, notes: Optional[str] = None,
                reason: Optional[str] = None) -> Asset:
        return self.apply_transition(AssetStateMachine.DISPOSE, actor, reason, method=method, value=value, notes=notes)

    def mark_lost(self, actor: User, reason: Optional[str] = None) -> Asset:
        return self.apply_transition(AssetStateMachine.MARK_LOST, actor, reason)

    def update_condition(self, condition: str, actor: User, notes: Optional[str] = None) -> Asset:
        """
        Set the condition rating.

        A rating of damaged also moves the asset to damaged, unless maintenance is in
        progress, in which case only the rating changes.
        """
        asset = self._asset
        require_asset_manager(actor, "update_condition", asset)
        if condition not in CONDITION_RATINGS:
            raise ValidationFailure(f"Invalid condition rating: {condition!r}", entity_id=asset.asset_id,
                                    action="update_condition", current_status=asset.status)

        if condition == 'damaged' and self.state_machine.can_transition(asset.status, AssetStateMachine.MARK_DAMAGED):
            return self.apply_transition(AssetStateMachine.MARK_DAMAGED, actor, notes or "Condition updated to damaged")

        def rate():
            if asset.status in self.state_machine.TERMINAL_STATES:
                raise InvalidTransition("Disposed assets cannot be re-rated", entity_id=asset.asset_id,
                                        action="update_condition", current_status=asset.status)
            asset.condition_rating = condition
            asset.updated_by_id = actor.id
            return asset

        run_atomic(rate, action="update_condition", entity_id=asset.asset_id, status_of=lambda: asset.status)
        logger.info(f"Asset {asset.asset_id} condition set to {condition}")
        return asset

    def add_maintenance(
        self,
        actor: User,
        maintenance_type: str,
        description: str,
        date=None,
        cost=None,
        next_maintenance_date=None,
        performed_by: Optional[str] = None,
        service_provider: Optional[str] = None,
        warranty_claim_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> AssetMaintenanceRecord:
        """Append a maintenance record; the history reads most recent first"""
        asset = self._asset
        require_asset_manager(actor, "add_maintenance", asset)
        context = dict(entity_id=asset.asset_id, action="add_maintenance", current_status=asset.status)
        if maintenance_type not in MAINTENANCE_TYPES:
            raise ValidationFailure(f"Invalid maintenance type: {maintenance_type!r}", **context)
        record_cost = to_decimal(cost, 'Maintenance cost', minimum=0, **context)
        record_date = to_datetime(date, 'Maintenance date', **context)
        next_due = to_datetime(next_maintenance_date, 'Next maintenance date', **context)
        text = require_text(description, 'Maintenance description', 1000, **context)

        def record():
            if asset.status in self.state_machine.TERMINAL_STATES:
                raise InvalidTransition("Disposed assets cannot be maintained", entity_id=asset.asset_id,
                                        action="add_maintenance", current_status=asset.status)
            entry = AssetMaintenanceRecord(
                date=record_date or utcnow_naive(),
                type=maintenance_type,
                description=text,
                cost=record_cost,
                next_maintenance_date=next_due,
                performed_by=performed_by,
                service_provider=service_provider,
                warranty_claim_id=warranty_claim_id,
                notes=notes,
                recorded_by_id=actor.id,
            )
            asset.maintenance_history.append(entry)
            asset.updated_by_id = actor.id
            return entry

        entry = run_atomic(record, action="add_maintenance", entity_id=asset.asset_id, status_of=lambda: asset.status)
        logger.info(f"Maintenance ({entry.type}) recorded for asset {asset.asset_id}")
        return entry

    def update_financials(self, actor: User, purchase_cost=_UNSET, purchase_date=_UNSET,
                          depreciation_rate=_UNSET, now=None) -> Asset:
        """Change cost, purchase date or rate and store the recomputed current value"""
        asset = self._asset
        require_asset_manager(actor, "update_financials", asset)
        context = dict(entity_id=asset.asset_id, action="update_financials", current_status=asset.status)
        changes = {}
        if purchase_cost is not _UNSET:
            changes['purchase_cost'] = to_decimal(purchase_cost, 'Purchase cost', minimum=0, **context)
        if purchase_date is not _UNSET:
            changes['purchase_date'] = to_datetime(purchase_date, 'Purchase date', **context)
        if depreciation_rate is not _UNSET:
            changes['depreciation_rate'] = to_decimal(depreciation_rate, 'Depreciation rate',
                                                      minimum=0, maximum=100, **context)

        def revalue():
            for key, value in changes.items():
                setattr(asset, key, value)
            asset.current_value = compute_current_value(
                asset.purchase_cost, asset.purchase_date, asset.depreciation_rate, now)
            asset.updated_by_id = actor.id
            return asset

        run_atomic(revalue, action="update_financials", entity_id=asset.asset_id, status_of=lambda: asset.status)
        logger.info(f"Asset {asset.asset_id} revalued at {asset.current_value}")
        return asset

    def to_dict(self) -> Dict[str, Any]:
        asset = self._asset
        data = asset.to_dict()
        data['age_in_years'] = asset.age_in_years
        data['warranty_status'] = asset.warranty_status
        data['full_name'] = asset.full_name
        data['status_history'] = [entry.to_dict() for entry in asset.status_history]
        data['maintenance_history'] = [record.to_dict() for record in asset.maintenance_history]
        return data
