"""FastAPI integration helpers for LearnFlow."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from learnflow.context import LearnFlowContext


class LearnFlowFastAPIPlugin:
    def __init__(self, app: FastAPI, context: LearnFlowContext):
        self.app = app
        self.context = context

        app.state.learnflow = context
        self._wrap_lifespan()

    def _wrap_lifespan(self) -> None:
        app_lifespan = self.app.router.lifespan_context

        @asynccontextmanager
        async def lifespan(app):
            await self.startup()
            try:
                async with app_lifespan(app) as state:
                    yield state
            finally:
                await self.shutdown()

        self.app.router.lifespan_context = lifespan

    def get_context(self) -> LearnFlowContext:
        return self.context

    def include_dashboard(self, path: str = "/admin", debug: bool = False) -> None:
        from learnflow.dashboard.app import create_dashboard_app

        dashboard_app = create_dashboard_app(self.context, debug=debug)
        self.app.mount(path, dashboard_app)

    async def startup(self) -> None:
        await self.context.start()

    async def shutdown(self) -> None:
        await self.context.close()


def add_learnflow_to_fastapi(app: FastAPI, context: LearnFlowContext) -> LearnFlowFastAPIPlugin:
    return LearnFlowFastAPIPlugin(app, context)
