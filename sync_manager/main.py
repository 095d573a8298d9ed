import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from sync_manager.config import get_settings
from sync_manager.db import init_db
from sync_manager.routes import config as config_routes
from sync_manager.routes import logs as log_routes
from sync_manager.routes import products
from sync_manager.routes import sync as sync_routes
from sync_manager.services.dashboard import DashboardController

log = logging.getLogger("uvicorn.error")


# ----------------------------
#  STARTUP / SHUTDOWN
# ----------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    app.state.dashboard = DashboardController.from_settings(get_settings())
    log.info("### Inventory Sync Manager prêt ###")
    try:
        yield
    finally:
        # aucune minuterie ne doit survivre à l'arrêt
        app.state.dashboard.shutdown()


app = FastAPI(
    title="Inventory Sync Manager",
    version="1.0.0",
    lifespan=lifespan,
)


# ----------------------------
#  CORS
# ----------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----------------------------
#  ROUTES
# ----------------------------
app.include_router(sync_routes.router)
app.include_router(log_routes.router)
app.include_router(products.router)
app.include_router(config_routes.router)


@app.get("/")
def root():
    return {
        "ok": True,
        "service": "Inventory Sync Manager",
        "docs": "/docs",
        "health": "/health",
    }


@app.head("/")
def root_head():
    return Response(status_code=200)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.head("/health")
def health_head():
    return Response(status_code=200)
