"""
Generic data insertion mixin for SQLAlchemy models
Provides from_dict and to_dict methods used by the contexts when building
entities from request payloads and when projecting them for collaborators.
"""

from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import inspect


class DataInsertionMixin:
    """
    Mixin that provides generic data insertion capabilities for SQLAlchemy models

    This mixin adds:
    - from_dict(): Create model instance from dictionary
    - to_dict(): Convert model instance to dictionary

    Models list columns that must never leave the store in ``_hidden_fields``.
    """

    _hidden_fields = frozenset()

    @classmethod
    def from_dict(cls, data_dict, user_id=None, skip_fields=None):
        """
        Create a model instance from a dictionary

        Args:
            data_dict (dict): Dictionary containing model data
            user_id (int, optional): User ID for audit fields
            skip_fields (list, optional): Fields to skip during creation

        Returns:
            Model instance (not saved to database)
        """
        skip_fields = set(skip_fields or ())

        mapper = inspect(cls)
        columns = {c.key for c in mapper.column_attrs}

        filtered_data = {}
        for key, value in data_dict.items():
            if key not in columns or key in skip_fields or key in cls._hidden_fields:
                continue
            if key in ('created_at', 'updated_at') and value is None:
                continue
            filtered_data[key] = value

        instance = cls(**filtered_data)

        if user_id is not None:
            if hasattr(instance, 'created_by_id') and not instance.created_by_id:
                instance.created_by_id = user_id
            if hasattr(instance, 'updated_by_id'):
                instance.updated_by_id = user_id

        return instance

    def to_dict(self, include_audit_fields=True):
        """
        Convert model instance to dictionary

        Args:
            include_audit_fields (bool): Whether to include audit fields

        Returns:
            dict: Dictionary representation of the model
        """
        result = {}
        mapper = inspect(self.__class__)

        for attr in mapper.column_attrs:
            if attr.key in self._hidden_fields:
                continue
            if not include_audit_fields and attr.key in ('created_at', 'updated_at', 'created_by_id', 'updated_by_id'):
                continue
            value = getattr(self, attr.key)
            if isinstance(value, (datetime, date)):
                result[attr.key] = value.isoformat()
            elif isinstance(value, Decimal):
                result[attr.key] = str(value)
            else:
                result[attr.key] = value

        return result
