from api.src.routes.health import router as health_router
from api.src.routes.executions import router as executions_router
from api.src.routes.credentials import router as credentials_router

__all__ = ["health_router", "executions_router", "credentials_router"]
