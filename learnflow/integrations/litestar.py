"""Litestar integration helpers for LearnFlow."""

from __future__ import annotations

from litestar import Litestar
from litestar.datastructures import State
from litestar.di import Provide

from learnflow.context import LearnFlowContext


def get_learnflow_context(state: State) -> LearnFlowContext:
    return state.learnflow


def learnflow_dependency() -> Provide:
    return Provide(get_learnflow_context, sync_to_thread=False)


def configure_learnflow(app: Litestar, context: LearnFlowContext) -> LearnFlowContext:
    """Stores the context on the app state and ties its lifecycle to the app."""
    app.state.learnflow = context
    app.on_startup.append(context.start)
    app.on_shutdown.append(context.close)
    return context
