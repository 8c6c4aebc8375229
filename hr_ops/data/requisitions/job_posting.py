from hr_ops import db
from sqlalchemy import event
from sqlalchemy.orm import validates
from hr_ops.data.core.user_created_base import UserCreatedBase
from hr_ops.buisness.core.errors import ValidationFailure
from hr_ops.utils.time_utils import utcnow_naive

PRIORITIES = ('low', 'medium', 'high', 'urgent')
CURRENCIES = ('INR', 'USD', 'EUR', 'GBP')

STATUS_DISPLAY = {
    'draft': 'Draft',
    'pending_approval': 'Pending Approval',
    'approved': 'Approved',
    'in_procurement': 'In Procurement',
    'filled': 'Filled',
    'cancelled': 'Cancelled',
}


class JobPosting(UserCreatedBase):
    __tablename__ = 'job_postings'

    job_id = db.Column(db.String(20), unique=True, nullable=False, index=True)

    # Requisition details
    hod_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    department = db.Column(db.String(100), nullable=False, index=True)
    position_title = db.Column(db.String(200), nullable=False)
    expected_experience = db.Column(db.String(50), nullable=True)
    expected_doj = db.Column(db.DateTime, nullable=False, index=True)
    job_description = db.Column(db.String(2000), nullable=False)
    hardware_requirements = db.Column(db.String(1000), nullable=True)
    software_requirements = db.Column(db.String(1000), nullable=True)
    budget_approved = db.Column(db.Numeric(14, 2), nullable=True)
    currency = db.Column(db.String(3), nullable=False, default='INR')
    priority = db.Column(db.String(10), nullable=False, default='medium')
    urgency_reason = db.Column(db.String(500), nullable=True)
    special_instructions = db.Column(db.String(1000), nullable=True)

    # Workflow status
    status = db.Column(db.String(30), nullable=False, default='draft', index=True)
    submitted_at = db.Column(db.DateTime, nullable=True)

    # Approval
    approved_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    approval_comments = db.Column(db.String(500), nullable=True)

    # Rejection (the reason itself lives in the workflow history)
    rejected_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    rejected_at = db.Column(db.DateTime, nullable=True)

    # Procurement
    procurement_assigned_to_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    procurement_assigned_at = db.Column(db.DateTime, nullable=True)
    procurement_notes = db.Column(db.String(1000), nullable=True)

    # Fulfillment (reference to the joining associate record)
    filled_by_ref = db.Column(db.String(50), nullable=True)
    filled_at = db.Column(db.DateTime, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    # Relationships
    hod = db.relationship('User', foreign_keys=[hod_id])
    approved_by = db.relationship('User', foreign_keys=[approved_by_id])
    rejected_by = db.relationship('User', foreign_keys=[rejected_by_id])
    procurement_assigned_to = db.relationship('User', foreign_keys=[procurement_assigned_to_id])
    workflow_history = db.relationship(
        'JobPostingWorkflowEntry',
        back_populates='job_posting',
        order_by=lambda: [JobPostingWorkflowEntry.performed_at, JobPostingWorkflowEntry.id],
        cascade='save-update, merge',
    )

    __table_args__ = (
        db.Index('ix_job_postings_hod_status', 'hod_id', 'status'),
        db.Index('ix_job_postings_department_status', 'department', 'status'),
        db.Index('ix_job_postings_status_priority', 'status', 'priority'),
    )

    __mapper_args__ = {"version_id_col": version_id}

    @validates('job_id')
    def _validate_job_id(self, key, value):
        if self.job_id and value != self.job_id:
            raise ValidationFailure("Job ID cannot be changed once assigned", entity_id=self.job_id, current_status=self.status)
        return value

    @validates('priority')
    def _validate_priority(self, key, value):
        if value not in PRIORITIES:
            raise ValidationFailure(f"Invalid priority: {value!r}", entity_id=self.job_id)
        return value

    @validates('currency')
    def _validate_currency(self, key, value):
        if value not in CURRENCIES:
            raise ValidationFailure(f"Invalid currency: {value!r}", entity_id=self.job_id)
        return value

    @validates('budget_approved')
    def _validate_budget(self, key, value):
        if value is not None and value < 0:
            raise ValidationFailure("Budget cannot be negative", entity_id=self.job_id)
        return value

    @property
    def days_until_doj(self):
        if not self.expected_doj:
            return None
        delta = self.expected_doj - utcnow_naive()
        # Partial days round up
        return -int(-delta.total_seconds() // 86400)

    @property
    def status_display(self):
        return STATUS_DISPLAY.get(self.status, self.status)

    @property
    def is_overdue(self):
        if self.status in ('filled', 'cancelled'):
            return False
        return self.expected_doj is not None and self.expected_doj < utcnow_naive()

    @classmethod
    def find_by_status(cls, status, department=None, hod_id=None):
        query = cls.query.filter_by(status=status)
        if department:
            query = query.filter_by(department=department)
        if hod_id:
            query = query.filter_by(hod_id=hod_id)
        return query.order_by(cls.created_at.desc()).all()

    @classmethod
    def find_overdue(cls, now=None):
        now = now or utcnow_naive()
        return cls.query.filter(
            cls.expected_doj < now,
            cls.status.in_(('pending_approval', 'approved', 'in_procurement')),
        ).all()

    @classmethod
    def find_for_procurement(cls):
        urgency = db.case({'urgent': 0, 'high': 1, 'medium': 2, 'low': 3}, value=cls.priority, else_=4)
        return cls.query.filter_by(status='approved').order_by(urgency, cls.expected_doj).all()

    @classmethod
    def search(cls, text=None, status=None, department=None, hod_id=None,
               from_date=None, to_date=None, limit=20, page=1):
        query = cls.query
        if status:
            query = query.filter(cls.status == status)
        if department:
            query = query.filter(cls.department == department)
        if hod_id:
            query = query.filter(cls.hod_id == hod_id)
        if from_date:
            query = query.filter(cls.created_at >= from_date)
        if to_date:
            query = query.filter(cls.created_at <= to_date)
        if text:
            like = f"%{text.lower()}%"
            query = query.filter(db.or_(
                db.func.lower(cls.job_id).like(like),
                db.func.lower(cls.position_title).like(like),
                db.func.lower(cls.department).like(like),
                db.func.lower(cls.job_description).like(like),
            ))
        return query.order_by(cls.created_at.desc()).limit(limit).offset((page - 1) * limit).all()

    def __repr__(self):
        return f'<JobPosting {self.job_id} {self.status}>'


class JobPostingWorkflowEntry(db.Model):
    """One immutable audit record of a job posting workflow action"""
    __tablename__ = 'job_posting_workflow_entries'

    ACTIONS = ('created', 'submitted', 'approved', 'rejected', 'assigned_procurement', 'filled', 'cancelled', 'commented')

    id = db.Column(db.Integer, primary_key=True)
    job_posting_id = db.Column(db.Integer, db.ForeignKey('job_postings.id'), nullable=False, index=True)
    action = db.Column(db.String(30), nullable=False)
    performed_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    performed_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    from_status = db.Column(db.String(30), nullable=True)
    to_status = db.Column(db.String(30), nullable=True)
    comments = db.Column(db.String(1000), nullable=True)

    job_posting = db.relationship('JobPosting', back_populates='workflow_history')
    performed_by = db.relationship('User', foreign_keys=[performed_by_id])

    @validates('action')
    def _validate_action(self, key, value):
        if value not in self.ACTIONS:
            raise ValidationFailure(f"Invalid workflow action: {value!r}")
        return value

    def to_dict(self):
        return {
            'action': self.action,
            'performed_by': self.performed_by_id,
            'performed_at': self.performed_at.isoformat() if self.performed_at else None,
            'from_status': self.from_status,
            'to_status': self.to_status,
            'comments': self.comments,
        }

    def __repr__(self):
        return f'<JobPostingWorkflowEntry {self.action} {self.from_status}->{self.to_status}>'


@event.listens_for(JobPostingWorkflowEntry, 'before_update')
@event.listens_for(JobPostingWorkflowEntry, 'before_delete')
def _refuse_history_rewrite(mapper, connection, target):
    raise ValidationFailure("Workflow history entries are append-only", action="rewrite_history")
