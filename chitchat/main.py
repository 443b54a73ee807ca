# chitchat/main.py
import logging
import sys
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import create_async_engine

from chitchat.api import auth, bots, friends, messages, rooms, users, ws
from chitchat.config import AppConfig
from chitchat.domain.exceptions import ChatError
from chitchat.infrastructure.ai_providers import create_provider_registry
from chitchat.infrastructure.attachment_store import LocalAttachmentStore
from chitchat.infrastructure.broadcaster import EventBroadcaster
from chitchat.infrastructure.database import create_database, enable_sqlite_savepoints
from chitchat.infrastructure.event_dispatcher import EventDispatcher
from chitchat.infrastructure.event_handlers import EventHandlers
from chitchat.infrastructure.redis_client import RedisClient
from chitchat.infrastructure.security import SecurityService


class Application:
    def __init__(self, config: AppConfig, redis_client: RedisClient | None = None):
        self.config = config
        self.logger = self.setup_logger()
        engine = create_async_engine(config.DATABASE_URL, echo=False)
        enable_sqlite_savepoints(engine)
        self.database = create_database(engine)
        self.redis_client = redis_client or RedisClient(
            config.REDIS_HOST, config.REDIS_PORT, self.logger
        )
        self.event_dispatcher = EventDispatcher()
        self.security_service = SecurityService(config)
        self.event_handlers = EventHandlers(self.redis_client)
        self.event_handlers.register_all(self.event_dispatcher)
        self.broadcaster = EventBroadcaster(self.event_dispatcher, self.logger)
        self.attachment_store = LocalAttachmentStore(config.UPLOAD_DIR)
        self.http_client = httpx.AsyncClient(timeout=config.AI_REQUEST_TIMEOUT_SECONDS)
        self.ai_registry = create_provider_registry(self.http_client, self.logger)

    @asynccontextmanager
    async def lifespan(self, app: FastAPI):
        await self.database.connect()
        await self.redis_client.connect()
        yield
        await self.broadcaster.close()
        await self.http_client.aclose()
        await self.database.disconnect()
        await self.redis_client.disconnect()

    def setup_logger(self):
        logger = logging.getLogger("ChitChat")
        logger.setLevel(self.config.LOG_LEVEL.upper())

        if not logger.handlers:
            c_handler = logging.StreamHandler(sys.stdout)
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            )
            c_handler.setFormatter(formatter)
            logger.addHandler(c_handler)

        return logger

    def create_app(self) -> FastAPI:
        app = FastAPI(
            title=self.config.PROJECT_NAME,
            version=self.config.PROJECT_VERSION,
            description=self.config.PROJECT_DESCRIPTION,
            openapi_url=f"{self.config.API_V1_STR}/openapi.json",
            lifespan=self.lifespan,
        )

        app.state.config = self.config
        app.state.security_service = self.security_service
        app.state.event_dispatcher = self.event_dispatcher
        app.state.broadcaster = self.broadcaster
        app.state.database = self.database
        app.state.redis_client = self.redis_client
        app.state.attachment_store = self.attachment_store
        app.state.ai_registry = self.ai_registry
        app.state.logger = self.logger

        prefix = self.config.API_V1_STR
        app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["auth"])
        app.include_router(users.router, prefix=f"{prefix}/users", tags=["users"])
        app.include_router(rooms.router, prefix=f"{prefix}/rooms", tags=["rooms"])
        app.include_router(
            messages.router, prefix=f"{prefix}/messages", tags=["messages"]
        )
        app.include_router(
            messages.attachments_router,
            prefix=f"{prefix}/attachments",
            tags=["messages"],
        )
        app.include_router(friends.router, prefix=f"{prefix}/friends", tags=["friends"])
        app.include_router(bots.router, prefix=f"{prefix}/bots", tags=["bots"])
        app.include_router(ws.router, prefix=f"{prefix}/ws", tags=["events"])

        @app.exception_handler(ChatError)
        async def chat_error_handler(request: Request, exc: ChatError):
            return JSONResponse(
                status_code=exc.status_code,
                content={"code": exc.code, "message": exc.message},
            )

        @app.exception_handler(Exception)
        async def global_exception_handler(request: Request, exc: Exception):
            self.logger.exception(f"Unhandled error on {request.url.path}")
            return JSONResponse(
                status_code=500,
                content={"message": f"An unexpected error occurred: {str(exc)}"},
            )

        @app.get("/")
        async def root():
            return {"message": "Welcome to the ChitChat API"}

        return app


def create() -> FastAPI:
    config = AppConfig()
    application = Application(config)
    app = application.create_app()
    application.logger.info("Application created and configured")

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create(), host="127.0.0.1", port=8000)
