# learnflow/serialization/json_serializer.py
import json
from typing import Any

from learnflow.common.exceptions import CacheSerializationError
from learnflow.serialization.base import BaseSerializer


class JsonSerializer(BaseSerializer):
    def serialize_value(self, value: Any) -> str:
        if hasattr(value, "model_dump"):
            value = value.model_dump(mode="json")
        try:
            # datetimes and other non-JSON leaves are stored as their str()
            return json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            raise CacheSerializationError(f"Failed to serialize: {e}") from e

    def deserialize_value(self, data: str) -> Any:
        try:
            return json.loads(data)
        except (TypeError, ValueError) as e:
            raise CacheSerializationError(f"Failed to deserialize: {e}") from e
