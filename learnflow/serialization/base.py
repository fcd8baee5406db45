# learnflow/serialization/base.py
from abc import ABC, abstractmethod
from typing import Any


class BaseSerializer(ABC):
    @abstractmethod
    def serialize_value(self, value: Any) -> str: ...

    @abstractmethod
    def deserialize_value(self, data: str) -> Any: ...

    def to_primitive(self, value: Any) -> Any:
        """Returns a copy of `value` made only of serializable primitives."""
        return self.deserialize_value(self.serialize_value(value))
