from fastapi import APIRouter, Depends

from api.src.dependencies import get_controller, get_credential_store
from controller.src.services.executor import ExecutionController
from controller.src.stores import RedisCredentialStore

router = APIRouter(tags=["health"])

@router.get("/health")
async def health_check():
    return {"status": "healthy", "service": "opsgate-api"}

@router.get("/health/backend")
async def backend_health_check(controller: ExecutionController = Depends(get_controller)):
    try:
        await controller.refresh_inventory()
        return {"status": "healthy", "backend": "connected", "services": len(controller.services)}
    except Exception as e:
        return {"status": "unhealthy", "backend": str(e)}

@router.get("/health/redis")
async def redis_health_check(store: RedisCredentialStore = Depends(get_credential_store)):
    try:
        await store.ping()
        return {"status": "healthy", "redis": "connected"}
    except Exception as e:
        return {"status": "unhealthy", "redis": str(e)}

@router.get("/health/all")
async def full_health_check(
    controller: ExecutionController = Depends(get_controller),
    store: RedisCredentialStore = Depends(get_credential_store),
):
    """Combined health check for all dependencies."""
    health = {
        "api": "healthy",
        "backend": "unknown",
        "redis": "unknown",
        "polling": controller.poller.is_polling,
    }

    # Check backend
    try:
        await controller.refresh_inventory()
        health["backend"] = "healthy"
    except Exception as e:
        health["backend"] = f"unhealthy: {e}"

    # Check Redis
    try:
        await store.ping()
        health["redis"] = "healthy"
    except Exception as e:
        health["redis"] = f"unhealthy: {e}"

    overall = "healthy" if all(
        v == "healthy" for k, v in health.items()
        if k not in ["polling"]
    ) else "degraded"

    return {"status": overall, "services": health}
