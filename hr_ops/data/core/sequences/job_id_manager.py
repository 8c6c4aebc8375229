"""
Job ID Manager
Manages the JOB-<year>-NNNN sequence for job postings
"""

from hr_ops.data.core.virtual_sequence_generator import VirtualSequenceGenerator


class JobPostingIDManager(VirtualSequenceGenerator):
    """Year-scoped job posting identifiers, four digit sequence"""

    @classmethod
    def get_entity_class(cls):
        return "JobPosting"

    @classmethod
    def get_prefix(cls):
        return "JOB"

    @classmethod
    def get_width(cls):
        return 4
