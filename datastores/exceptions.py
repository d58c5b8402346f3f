"""
Exception hierarchy for datastores.

Structural errors (registration, invalid operations) surface synchronously
to the caller. Persistence errors wrap failures raised by a strategy.
"""

from typing import Optional


class DataStoreError(Exception):
    """Base class for all datastores errors"""


class GlobalStoreAlreadyRegisteredError(DataStoreError):
    """Raised when a second global store is registered for the same type"""

    def __init__(self, entity_type: type):
        self.entity_type = entity_type
        super().__init__(
            f"A global store for type '{entity_type.__name__}' is already registered"
        )


class GlobalStoreNotRegisteredError(DataStoreError):
    """Raised when resolving a type that has no global store"""

    def __init__(self, entity_type: type):
        self.entity_type = entity_type
        super().__init__(
            f"No global store registered for type '{entity_type.__name__}'"
        )


class InvalidOperationError(DataStoreError):
    """Raised when an operation is not valid for the current object state"""


class PersistenceError(DataStoreError):
    """Raised when a persistence strategy fails"""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class LoadError(PersistenceError):
    """Loading items from the backing resource failed"""


class SaveError(PersistenceError):
    """Saving items to the backing resource failed"""


class DuplicateItemError(InvalidOperationError):
    """Raised by stores that enforce uniqueness when an equal item exists"""
