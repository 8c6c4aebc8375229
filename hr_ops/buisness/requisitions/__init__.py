"""
Requisitions business layer.

Main entry point: JobPostingContext (domain facade)

- JobPostingContext: Creation, workflow transitions and audit comments
- JobPostingStateMachine: Transition table and permission guards
"""

from hr_ops.buisness.requisitions.job_posting_context import JobPostingContext
from hr_ops.buisness.requisitions.state_machine import JobPostingStateMachine

__all__ = [
    'JobPostingContext',
    'JobPostingStateMachine',
]
