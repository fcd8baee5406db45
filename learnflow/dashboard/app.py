"""Litestar application factory for the LearnFlow admin app."""
from typing import Optional

from litestar import Litestar
from litestar.di import Provide
from litestar.datastructures import State

from learnflow.context import LearnFlowContext
from learnflow.serialization.base import BaseSerializer
from learnflow.serialization.json_serializer import JsonSerializer

from .controllers.cache import CacheController
from .controllers.core import CoreController
from .controllers.jobs import JobsController


def get_context(state: State) -> LearnFlowContext:
    return state.context


def get_serializer(state: State) -> BaseSerializer:
    return state.serializer


def create_dashboard_app(
    context: LearnFlowContext,
    serializer: Optional[BaseSerializer] = None,
    debug: bool = False,
) -> Litestar:
    """Create the Litestar application for the admin endpoints.

    Args:
        context: The LearnFlow context whose queue and caches are exposed.
        serializer: Used to turn job payloads and results into JSON primitives.
        debug: Passed through to Litestar.

    Returns:
        A Litestar application.
    """
    return Litestar(
        route_handlers=[CoreController, CacheController, JobsController],
        state=State({"context": context, "serializer": serializer or JsonSerializer()}),
        dependencies={
            "context": Provide(get_context, sync_to_thread=False),
            "serializer": Provide(get_serializer, sync_to_thread=False),
        },
        debug=debug,
    )
