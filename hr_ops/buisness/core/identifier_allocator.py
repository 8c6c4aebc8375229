"""
Identifier allocator
Routes an entity class name to the sequence manager that owns its identifier format.
"""

from typing import Dict, Optional, Type

from hr_ops.buisness.core.errors import ValidationFailure
from hr_ops.data.core.sequences import AssetIDManager, JobPostingIDManager
from hr_ops.data.core.virtual_sequence_generator import VirtualSequenceGenerator
from hr_ops.logger import get_logger

logger = get_logger("hr_ops.buisness.core.identifier_allocator")


class IdentifierAllocator:
    """
    Allocates year-scoped identifiers such as JOB-2025-0007 or ASSET-2025-000042.

    Allocation runs inside the caller's transaction. Creation flows allocate
    before any other write so that a retried counter insert cannot discard
    work already staged in the session.
    """

    MANAGERS: Dict[str, Type[VirtualSequenceGenerator]] = {
        'JobPosting': JobPostingIDManager,
        'Asset': AssetIDManager,
    }

    @classmethod
    def manager_for(cls, entity_class: str) -> Type[VirtualSequenceGenerator]:
        try:
            return cls.MANAGERS[entity_class]
        except KeyError:
            raise ValidationFailure(
                f"No identifier sequence for entity class {entity_class!r}",
                entity_id=entity_class,
                action="allocate",
            ) from None

    @classmethod
    def allocate(cls, entity_class: str, year: Optional[int] = None) -> str:
        manager = cls.manager_for(entity_class)
        identifier = manager.get_next_id(year)
        logger.info(f"Allocated {identifier}")
        return identifier
