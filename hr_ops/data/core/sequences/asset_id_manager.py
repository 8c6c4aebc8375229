"""
Asset ID Manager
Manages the ASSET-<year>-NNNNNN sequence for hardware assets
"""

from hr_ops.data.core.virtual_sequence_generator import VirtualSequenceGenerator


class AssetIDManager(VirtualSequenceGenerator):
    """Year-scoped asset identifiers, six digit sequence"""

    @classmethod
    def get_entity_class(cls):
        return "Asset"

    @classmethod
    def get_prefix(cls):
        return "ASSET"

    @classmethod
    def get_width(cls):
        return 6
