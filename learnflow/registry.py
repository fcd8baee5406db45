"""Registry mapping job-type names to handlers and their payload models."""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ValidationError

from learnflow.common.exceptions import InvalidPayload, UnknownJobType
from learnflow.common.job import Job

JobHandler = Callable[[Any, Job], Union[Any, Awaitable[Any]]]


@dataclass
class RegisteredJobType:
    name: str
    handler: JobHandler
    payload_model: Optional[Type[BaseModel]] = None

    def validate(self, payload: Any) -> Any:
        """Coerce a payload into the registered model, if there is one."""
        if self.payload_model is None or isinstance(payload, self.payload_model):
            return payload
        try:
            return self.payload_model.model_validate(payload)
        except ValidationError as e:
            raise InvalidPayload(self.name, str(e)) from e


class JobRegistry:
    """
    Registry of job handlers.

    Types are kept in registration order, which is also the order the
    processing loop scans them in.
    """

    def __init__(self):
        self._types: Dict[str, RegisteredJobType] = {}

    def register(
        self,
        name: str,
        handler: JobHandler,
        payload_model: Optional[Type[BaseModel]] = None,
    ) -> RegisteredJobType:
        """Register a job handler. Registering an existing name replaces its handler."""
        registered = RegisteredJobType(name, handler, payload_model)
        self._types[name] = registered
        return registered

    def get(self, name: str) -> RegisteredJobType:
        try:
            return self._types[name]
        except KeyError:
            raise UnknownJobType(name) from None

    def __contains__(self, name: str) -> bool:
        return name in self._types

    def list_handlers(self) -> List[str]:
        return list(self._types.keys())
