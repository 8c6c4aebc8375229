from datetime import timedelta

from hr_ops import db
from sqlalchemy import event
from sqlalchemy.orm import validates
from hr_ops.data.core.user_created_base import UserCreatedBase
from hr_ops.buisness.core.errors import ValidationFailure
from hr_ops.logger import get_logger
from hr_ops.utils.time_utils import utcnow_naive

logger = get_logger("hr_ops.data.assets")

ASSET_TYPES = ('laptop', 'desktop', 'monitor', 'keyboard', 'mouse', 'headset', 'mobile',
               'tablet', 'printer', 'scanner', 'projector', 'other')
CONDITION_RATINGS = ('excellent', 'good', 'fair', 'poor', 'damaged')
CURRENCIES = ('INR', 'USD', 'EUR', 'GBP')
DISPOSAL_METHODS = ('sold', 'donated', 'recycled', 'destroyed', 'returned_vendor')
MAINTENANCE_TYPES = ('routine', 'repair', 'upgrade', 'cleaning', 'inspection')


class Asset(UserCreatedBase):
    __tablename__ = 'assets'

    asset_id = db.Column(db.String(20), unique=True, nullable=False, index=True)
    asset_type = db.Column(db.String(20), nullable=False, index=True)
    brand = db.Column(db.String(50), nullable=True)
    model_name = db.Column('model', db.String(100), nullable=True)
    serial_number = db.Column(db.String(100), unique=True, nullable=True)
    tags = db.Column(db.JSON, nullable=True)

    # Financials
    purchase_date = db.Column(db.DateTime, nullable=True, index=True)
    purchase_cost = db.Column(db.Numeric(14, 2), nullable=True)
    currency = db.Column(db.String(3), nullable=False, default='INR')
    depreciation_rate = db.Column(db.Numeric(5, 2), nullable=True, default=20)
    current_value = db.Column(db.Numeric(14, 2), nullable=True)
    vendor_name = db.Column(db.String(120), nullable=True)
    warranty_expiry = db.Column(db.DateTime, nullable=True, index=True)

    # Status and condition
    status = db.Column(db.String(30), nullable=False, default='available', index=True)
    condition_rating = db.Column(db.String(20), nullable=False, default='excellent')

    # Location and assignment
    current_location = db.Column(db.String(200), nullable=True)
    assigned_to_ref = db.Column(db.String(50), nullable=True, index=True)
    assigned_date = db.Column(db.DateTime, nullable=True)
    assigned_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    # Disposal
    disposal_date = db.Column(db.DateTime, nullable=True)
    disposal_method = db.Column(db.String(20), nullable=True)
    disposal_value = db.Column(db.Numeric(14, 2), nullable=True)
    disposal_notes = db.Column(db.String(1000), nullable=True)
    disposed_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    # Relationships
    assigned_by = db.relationship('User', foreign_keys=[assigned_by_id])
    disposed_by = db.relationship('User', foreign_keys=[disposed_by_id])
    status_history = db.relationship(
        'AssetStatusEntry',
        back_populates='asset',
        order_by=lambda: [AssetStatusEntry.changed_at, AssetStatusEntry.id],
    )
    maintenance_history = db.relationship(
        'AssetMaintenanceRecord',
        back_populates='asset',
        order_by=lambda: [AssetMaintenanceRecord.date.desc(), AssetMaintenanceRecord.id.desc()],
    )

    __table_args__ = (
        db.Index('ix_assets_type_status', 'asset_type', 'status'),
        db.Index('ix_assets_assignee_status', 'assigned_to_ref', 'status'),
        db.Index('ix_assets_status_location', 'status', 'current_location'),
    )

    __mapper_args__ = {"version_id_col": version_id}

    @validates('asset_id')
    def _validate_asset_id(self, key, value):
        if self.asset_id and value != self.asset_id:
            raise ValidationFailure("Asset ID cannot be changed once assigned", entity_id=self.asset_id, current_status=self.status)
        return value

    @validates('asset_type')
    def _validate_asset_type(self, key, value):
        if value not in ASSET_TYPES:
            raise ValidationFailure(f"Invalid asset type: {value!r}", entity_id=self.asset_id)
        return value

    @validates('condition_rating')
    def _validate_condition(self, key, value):
        if value not in CONDITION_RATINGS:
            raise ValidationFailure(f"Invalid condition rating: {value!r}", entity_id=self.asset_id)
        return value

    @validates('currency')
    def _validate_currency(self, key, value):
        if value not in CURRENCIES:
            raise ValidationFailure(f"Invalid currency: {value!r}", entity_id=self.asset_id)
        return value

    @property
    def age_in_years(self):
        if not self.purchase_date:
            return None
        return int((utcnow_naive() - self.purchase_date).days // 365)

    @property
    def warranty_status(self):
        if not self.warranty_expiry:
            return 'unknown'
        now = utcnow_naive()
        if self.warranty_expiry > now:
            if self.warranty_expiry - now <= timedelta(days=30):
                return 'expiring_soon'
            return 'active'
        return 'expired'

    @property
    def next_maintenance_due(self):
        if not self.maintenance_history:
            return None
        return self.maintenance_history[0].next_maintenance_date

    @property
    def full_name(self):
        parts = [p for p in (self.brand, self.model_name, self.asset_type) if p]
        return ' '.join(parts) or self.asset_id

    @classmethod
    def find_available(cls, asset_type=None):
        query = cls.query.filter_by(status='available')
        if asset_type:
            query = query.filter_by(asset_type=asset_type)
        return query.order_by(cls.purchase_date.desc()).all()

    @classmethod
    def find_by_location(cls, location):
        return cls.query.filter_by(current_location=location).order_by(cls.asset_type, cls.brand).all()

    @classmethod
    def find_maintenance_due(cls, now=None):
        now = now or utcnow_naive()
        return (
            cls.query.join(AssetMaintenanceRecord, AssetMaintenanceRecord.asset_id == cls.id)
            .filter(
                cls.status.in_(('allocated', 'available')),
                AssetMaintenanceRecord.next_maintenance_date <= now,
            )
            .distinct()
            .all()
        )

    @classmethod
    def find_expiring_warranties(cls, days=30, now=None):
        now = now or utcnow_naive()
        return (
            cls.query.filter(
                cls.warranty_expiry >= now,
                cls.warranty_expiry <= now + timedelta(days=days),
                cls.status != 'disposed',
            )
            .order_by(cls.warranty_expiry)
            .all()
        )

    @classmethod
    def search(cls, text=None, asset_type=None, status=None, location=None, assigned_to=None,
               from_date=None, to_date=None, limit=20, page=1):
        query = cls.query
        if asset_type:
            query = query.filter(cls.asset_type == asset_type)
        if status:
            query = query.filter(cls.status == status)
        if location:
            query = query.filter(db.func.lower(cls.current_location).like(f"%{location.lower()}%"))
        if assigned_to:
            query = query.filter(cls.assigned_to_ref == assigned_to)
        if from_date:
            query = query.filter(cls.purchase_date >= from_date)
        if to_date:
            query = query.filter(cls.purchase_date <= to_date)
        if text:
            like = f"%{text.lower()}%"
            query = query.filter(db.or_(
                db.func.lower(cls.asset_id).like(like),
                db.func.lower(cls.brand).like(like),
                db.func.lower(cls.model_name).like(like),
                db.func.lower(cls.serial_number).like(like),
                db.func.lower(cls.current_location).like(like),
            ))
        return query.order_by(cls.created_at.desc(), cls.id.desc()).limit(limit).offset((page - 1) * limit).all()

    def __repr__(self):
        return f'<Asset {self.asset_id} {self.status}>'


class AssetStatusEntry(db.Model):
    """One immutable audit record of an asset status change"""
    __tablename__ = 'asset_status_entries'

    id = db.Column(db.Integer, primary_key=True)
    asset_id = db.Column(db.Integer, db.ForeignKey('assets.id'), nullable=False, index=True)
    action = db.Column(db.String(30), nullable=False)
    status = db.Column(db.String(30), nullable=False)
    previous_status = db.Column(db.String(30), nullable=True)
    changed_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    changed_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    reason = db.Column(db.String(500), nullable=True)

    asset = db.relationship('Asset', back_populates='status_history')
    changed_by = db.relationship('User', foreign_keys=[changed_by_id])

    def to_dict(self):
        return {
            'status': self.status,
            'changed_by': self.changed_by_id,
            'changed_at': self.changed_at.isoformat() if self.changed_at else None,
            'reason': self.reason,
            'previous_status': self.previous_status,
        }

    def __repr__(self):
        return f'<AssetStatusEntry {self.previous_status}->{self.status}>'


class AssetMaintenanceRecord(db.Model):
    __tablename__ = 'asset_maintenance_records'

    id = db.Column(db.Integer, primary_key=True)
    asset_id = db.Column(db.Integer, db.ForeignKey('assets.id'), nullable=False, index=True)
    date = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    type = db.Column(db.String(20), nullable=False)
    description = db.Column(db.String(1000), nullable=False)
    cost = db.Column(db.Numeric(14, 2), nullable=True)
    performed_by = db.Column(db.String(120), nullable=True)
    service_provider = db.Column(db.String(120), nullable=True)
    next_maintenance_date = db.Column(db.DateTime, nullable=True, index=True)
    warranty_claim_id = db.Column(db.String(60), nullable=True)
    notes = db.Column(db.String(1000), nullable=True)
    recorded_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    asset = db.relationship('Asset', back_populates='maintenance_history')

    @validates('type')
    def _validate_type(self, key, value):
        if value not in MAINTENANCE_TYPES:
            raise ValidationFailure(f"Invalid maintenance type: {value!r}")
        return value

    @validates('cost')
    def _validate_cost(self, key, value):
        if value is not None and value < 0:
            raise ValidationFailure("Maintenance cost cannot be negative")
        return value

    @validates('description')
    def _validate_description(self, key, value):
        if not value or not value.strip():
            raise ValidationFailure("Maintenance description is required")
        return value

    def to_dict(self):
        return {
            'date': self.date.isoformat() if self.date else None,
            'type': self.type,
            'description': self.description,
            'cost': str(self.cost) if self.cost is not None else None,
            'next_maintenance_date': self.next_maintenance_date.isoformat() if self.next_maintenance_date else None,
        }


@event.listens_for(AssetStatusEntry, 'before_update')
@event.listens_for(AssetStatusEntry, 'before_delete')
def _refuse_history_rewrite(mapper, connection, target):
    logger.error(f"Refused rewrite of status history entry {target.id}")
    raise ValidationFailure("Asset status history entries are append-only", action="rewrite_history")
