"""
Assets business layer.

Main entry point: AssetContext (domain facade)

- AssetContext: Registration, lifecycle transitions, maintenance and revaluation
- AssetStateMachine: Transition table and permission guards
- compute_current_value: Straight-line depreciation
"""

from hr_ops.buisness.assets.asset_context import AssetContext
from hr_ops.buisness.assets.depreciation import compute_current_value
from hr_ops.buisness.assets.state_machine import AssetStateMachine

__all__ = [
    'AssetContext',
    'AssetStateMachine',
    'compute_current_value',
]
