import logging

import uvicorn

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from api.src.config import get_settings
from api.src.routes import credentials_router, executions_router, health_router
from controller.src.backend import BackendClient
from controller.src.config import get_settings as get_controller_settings
from controller.src.main import configure_logging
from controller.src.services.executor import ExecutionController
from controller.src.stores import RedisCredentialStore

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    controller_settings = get_controller_settings()
    client = BackendClient(controller_settings)
    store = RedisCredentialStore(settings=controller_settings)
    app.state.credential_store = store
    app.state.controller = ExecutionController(client, store, settings=controller_settings)
    logger.info("Starting pipeline gate API")
    yield
    # Shutdown
    app.state.controller.stop_polling()
    await client.close()
    await store.close()
    logger.info("Shutting down pipeline gate API")

app = FastAPI(
    title="OpsGate",
    description="Pipeline execution and security-gate controller",
    version="0.1.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health_router)
app.include_router(executions_router, prefix="/api")
app.include_router(credentials_router, prefix="/api")

@app.get("/")
async def root():
    return {
        "name": "OpsGate",
        "version": "0.1.0",
        "docs": "/docs"
    }

def run():
    uvicorn.run("api.src.main:app", host=settings.api_host, port=settings.api_port)

if __name__ == "__main__":
    run()
