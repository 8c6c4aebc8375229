from hr_ops import db


class SequenceCounter(db.Model):
    """
    One row per (entity class, year) holding the last identifier sequence handed out.
    Rows are only ever changed by a single-statement increment.
    """
    __tablename__ = 'sequence_counters'

    id = db.Column(db.Integer, primary_key=True)
    entity_class = db.Column(db.String(50), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    current_value = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.UniqueConstraint('entity_class', 'year', name='uq_sequence_counters_class_year'),
    )

    def __repr__(self):
        return f'<SequenceCounter {self.entity_class} {self.year}={self.current_value}>'
