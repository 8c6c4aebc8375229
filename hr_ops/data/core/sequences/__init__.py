"""
Sequence ID Managers
Manages identifier sequences for the entity classes that carry human-readable IDs
"""

from hr_ops.data.core.sequences.job_id_manager import JobPostingIDManager
from hr_ops.data.core.sequences.asset_id_manager import AssetIDManager

__all__ = [
    'JobPostingIDManager',
    'AssetIDManager',
]
