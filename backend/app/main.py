from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import Settings, settings as default_settings
from app.core.errors import ShopError
from app.core.logging_config import configure_logging
from app.core.security import TokenIssuer
from app.db.init_db import init_db
import app.models  # noqa: F401  # force model registration

from app.api.v1.auth import router as auth_router
from app.api.v1.orders import router as orders_router
from app.api.v1.products import router as products_router


async def shop_error_handler(request: Request, exc: ShopError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()}, headers=headers)


def create_application(config: Optional[Settings] = None, *, bootstrap: bool = True) -> FastAPI:
    config = config or default_settings
    configure_logging(config.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        if bootstrap:
            await init_db(config)
        yield

    app = FastAPI(title="Marketplace API", lifespan=lifespan)

    # Process-wide signing key: built once here, read-only afterwards
    app.state.token_issuer = TokenIssuer.from_settings(config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            # Local development (Vite / Angular frontends)
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4200",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ShopError, shop_error_handler)

    @app.get("/")
    def root():
        return {"status": "ok", "service": "marketplace"}

    # Routers
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(products_router, prefix="/api/v1")
    app.include_router(orders_router, prefix="/api/v1")

    return app


app = create_application()
