"""
Dictionary round-tripping for SQLAlchemy models.

Models mix this in to get ``from_dict``/``to_dict`` plus the
find-or-create helpers used by the build and debug-data loaders.
"""

from datetime import datetime, date
from sqlalchemy import inspect
from marketplace import db
from marketplace.logger import get_logger

logger = get_logger("marketplace.business.core.data_insertion")

AUDIT_FIELDS = ('created_at', 'updated_at', 'created_by_id', 'updated_by_id')


def serialize_value(value):
    """Make a column value JSON-safe."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class DataInsertionMixin:
    """
    Mixin that provides generic data insertion capabilities for SQLAlchemy models

    This mixin adds:
    - from_dict(): Create model instance from dictionary
    - to_dict(): Convert model instance to dictionary
    - create_from_dict(): Create and stage/save a model instance
    - find_or_create_from_dict(): Idempotent insertion keyed on lookup fields
    """

    @classmethod
    def from_dict(cls, data_dict, user_id=None, skip_fields=None):
        """
        Create a model instance from a dictionary. Keys that are not mapped
        columns are ignored; ``password`` is routed through ``set_password``.

        Args:
            data_dict (dict): Dictionary containing model data
            user_id (int, optional): User ID for audit fields
            skip_fields (list, optional): Fields to skip during creation

        Returns:
            Model instance (not saved to database)
        """
        skip_fields = set(skip_fields or [])
        columns = {c.key for c in inspect(cls).columns}

        filtered_data = {}
        for key, value in data_dict.items():
            if key not in columns or key in skip_fields:
                continue
            if key in ('created_at', 'updated_at') and value is None:
                continue
            filtered_data[key] = value

        instance = cls(**filtered_data)

        if data_dict.get('password') and hasattr(instance, 'set_password'):
            instance.set_password(data_dict['password'])

        if user_id is not None:
            if hasattr(instance, 'created_by_id') and not instance.created_by_id:
                instance.created_by_id = user_id
            if hasattr(instance, 'updated_by_id'):
                instance.updated_by_id = user_id

        return instance

    def to_dict(self, include_audit_fields=True, exclude=None):
        """
        Convert model columns to a JSON-safe dictionary

        Args:
            include_audit_fields (bool): Whether to include audit fields
            exclude (iterable, optional): Column keys to leave out

        Returns:
            dict: Dictionary representation of the model
        """
        exclude = set(exclude or [])
        result = {}
        for column in inspect(self.__class__).columns:
            if column.key in exclude:
                continue
            if not include_audit_fields and column.key in AUDIT_FIELDS:
                continue
            result[column.key] = serialize_value(getattr(self, column.key))
        return result

    @classmethod
    def create_from_dict(cls, data_dict, user_id=None, skip_fields=None, commit=True):
        """
        Create a model instance from dictionary and add it to the session

        Args:
            commit (bool): Whether to commit the transaction (otherwise flush)

        Returns:
            Model instance
        """
        instance = cls.from_dict(data_dict, user_id, skip_fields)

        try:
            db.session.add(instance)
            if commit:
                db.session.commit()
                logger.info(f"Created {cls.__name__}: {instance}")
            else:
                db.session.flush()
            return instance
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error creating {cls.__name__}: {e}")
            raise

    @classmethod
    def find_or_create_from_dict(cls, data_dict, user_id=None, skip_fields=None,
                                 lookup_fields=None, commit=True):
        """
        Find existing instance or create new one from dictionary

        Args:
            lookup_fields (list, optional): Fields to use for lookup (default: unique columns present in data_dict)

        Returns:
            tuple: (instance, created) where created is boolean
        """
        if lookup_fields is None:
            lookup_fields = [c.key for c in inspect(cls).columns if c.unique and c.key in data_dict]

        lookup_data = {field: data_dict[field] for field in lookup_fields if field in data_dict}
        if not lookup_data:
            return cls.create_from_dict(data_dict, user_id, skip_fields, commit), True

        existing = cls.query.filter_by(**lookup_data).first()
        if existing:
            logger.debug(f"Found existing {cls.__name__}: {existing}")
            return existing, False

        return cls.create_from_dict(data_dict, user_id, skip_fields, commit), True
