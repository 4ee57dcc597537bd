# backoffice/middleware/db_middleware.py

from starlette.types import ASGIApp, Receive, Scope, Send


class DBSessionMiddleware:
    """Одна AsyncSession на HTTP-запрос в request.state.db."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        # убедимся, что state есть
        state = scope.setdefault("state", {})
        # фабрика живёт в app.state.db (создаётся в lifespan)
        state["db"] = scope["app"].state.db.session()
        try:
            await self.app(scope, receive, send)
        finally:
            # закрываем сессию только после завершения запроса
            await state["db"].close()
