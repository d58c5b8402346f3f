"""
Entity base models.

EntityBase gives stores an identity to compare by; ObservableEntity adds
property-change notifications used by the persistence layer to persist
single-item updates.
"""

import logging
from typing import Any, Callable, List

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

logger = logging.getLogger(__name__)

PropertyChangedHandler = Callable[['ObservableEntity', str], None]


class EntityBase(BaseModel):
    """
    Base model for identified entities.

    An id of 0 marks an entity that has not been persisted yet; persistence
    strategies assign ids on first save.
    """
    model_config = ConfigDict(validate_assignment=True)

    id: int = Field(default=0, ge=0)

    @property
    def is_new(self) -> bool:
        """True until a persistence strategy assigned an id"""
        return self.id == 0


class ObservableEntity(EntityBase):
    """Entity that notifies subscribers when one of its fields changes value"""

    _property_changed_handlers: List[PropertyChangedHandler] = PrivateAttr(default_factory=list)

    def subscribe_property_changed(self, handler: PropertyChangedHandler) -> None:
        if handler not in self._property_changed_handlers:
            self._property_changed_handlers.append(handler)

    def unsubscribe_property_changed(self, handler: PropertyChangedHandler) -> None:
        if handler in self._property_changed_handlers:
            self._property_changed_handlers.remove(handler)

    def __eq__(self, other: Any) -> bool:
        # Subscribers are private state and must not affect value equality
        if type(other) is not type(self):
            return NotImplemented
        return self.__dict__ == other.__dict__

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith('_') or name not in type(self).model_fields:
            super().__setattr__(name, value)
            return

        old_value = getattr(self, name)
        super().__setattr__(name, value)
        if getattr(self, name) != old_value:
            self._raise_property_changed(name)

    def _raise_property_changed(self, name: str) -> None:
        for handler in list(self._property_changed_handlers):
            try:
                handler(self, name)
            except Exception as e:
                logger.error(f"Property changed handler failed for {type(self).__name__}.{name}: {e}")
