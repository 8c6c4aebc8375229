"""
Virtual Sequence Generator Base Class
Hands out year-scoped, human-readable identifiers backed by the sequence_counters table
"""

from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from hr_ops import db
from hr_ops.data.core.sequence_counter import SequenceCounter
from hr_ops.buisness.core.errors import ResourceUnavailable
from hr_ops.utils.time_utils import utcnow_naive
from hr_ops.logger import get_logger

logger = get_logger("hr_ops.data.core.sequences")


class VirtualSequenceGenerator(ABC):
    """
    Abstract base class for identifier sequence generators.

    The increment is a single UPDATE against the (entity class, year) counter row,
    followed by a read-back inside the same transaction, so two concurrent callers
    can never observe the same value. A missing row is inserted at 1; losing the
    race to insert it surfaces as an IntegrityError and the increment is retried.
    """

    MAX_INSERT_RETRIES = 3

    @classmethod
    @abstractmethod
    def get_entity_class(cls) -> str:
        """Name of the entity class this sequence belongs to"""

    @classmethod
    @abstractmethod
    def get_prefix(cls) -> str:
        """Identifier prefix, e.g. JOB"""

    @classmethod
    @abstractmethod
    def get_width(cls) -> int:
        """Zero-padding width of the sequence part"""

    @classmethod
    def format_id(cls, year: int, sequence: int) -> str:
        return f"{cls.get_prefix()}-{year}-{str(sequence).zfill(cls.get_width())}"

    @classmethod
    def parse_sequence(cls, identifier: str) -> int:
        return int(identifier.rsplit('-', 1)[-1])

    @classmethod
    def _increment(cls, year: int) -> Optional[int]:
        table = SequenceCounter.__table__
        result = db.session.execute(
            update(table)
            .where(table.c.entity_class == cls.get_entity_class(), table.c.year == year)
            .values(current_value=table.c.current_value + 1)
        )
        if result.rowcount == 0:
            return None
        return db.session.execute(
            select(table.c.current_value)
            .where(table.c.entity_class == cls.get_entity_class(), table.c.year == year)
        ).scalar_one()

    @classmethod
    def get_next_sequence(cls, year: Optional[int] = None) -> int:
        """
        Increment and return the sequence for the given year.
        The caller's transaction owns the increment: it is released only on commit.
        """
        year = year or utcnow_naive().year
        for attempt in range(1, cls.MAX_INSERT_RETRIES + 1):
            value = cls._increment(year)
            if value is not None:
                return value
            try:
                db.session.execute(
                    SequenceCounter.__table__.insert().values(
                        entity_class=cls.get_entity_class(), year=year, current_value=1
                    )
                )
                logger.info(f"Started {cls.get_entity_class()} sequence for {year}")
                return 1
            except IntegrityError:
                # Another writer created the row first; its increment is now visible
                db.session.rollback()
                logger.debug(f"Counter row race for {cls.get_entity_class()}/{year}, attempt {attempt}")
        raise ResourceUnavailable(
            f"Sequence counter for {year} could not be created",
            entity_id=cls.get_entity_class(),
            action="allocate",
        )

    @classmethod
    def get_next_id(cls, year: Optional[int] = None) -> str:
        year = year or utcnow_naive().year
        return cls.format_id(year, cls.get_next_sequence(year))

    @classmethod
    def get_current_sequence_value(cls, year: Optional[int] = None) -> int:
        year = year or utcnow_naive().year
        value = db.session.execute(
            select(SequenceCounter.current_value).where(
                SequenceCounter.entity_class == cls.get_entity_class(),
                SequenceCounter.year == year,
            )
        ).scalar_one_or_none()
        return value or 0

    @classmethod
    def reset_sequence(cls, year: int, start_value: int = 1):
        """
        Reset the sequence so the next identifier uses start_value.
        Useful for testing or data migration
        """
        counter = SequenceCounter.query.filter_by(entity_class=cls.get_entity_class(), year=year).first()
        if counter is None:
            counter = SequenceCounter(entity_class=cls.get_entity_class(), year=year)
            db.session.add(counter)
        counter.current_value = start_value - 1
        db.session.commit()

    @classmethod
    def get_sequence_info(cls, year: Optional[int] = None):
        year = year or utcnow_naive().year
        return {
            'entity_class': cls.get_entity_class(),
            'year': year,
            'current_value': cls.get_current_sequence_value(year),
        }
