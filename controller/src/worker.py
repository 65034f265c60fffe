"""
Watch loop - polls pipeline status until every service is quiet.
"""

import asyncio
import logging

from controller.src.backend import BackendClient
from controller.src.config import get_settings
from controller.src.services.executor import ExecutionController
from controller.src.stores import RedisCredentialStore

logger = logging.getLogger(__name__)

def log_finished(service_id, stage, success):
    logger.info(f"Service {service_id} {stage.value} finished: {'success' if success else 'failed'}")

async def watch_loop(controller: ExecutionController, check_interval: float = 1.0) -> bool:
    """
    Poll until the poller stops by itself.
    Returns False when polling stopped because a fetch failed.
    """
    await controller.start_polling()
    logger.info(f"Watching {len(controller.services)} services...")

    try:
        while controller.poller.is_polling:
            await asyncio.sleep(check_interval)
    finally:
        controller.stop_polling()

    for service_id, service in controller.services.items():
        stages = ", ".join(
            f"{view.stage.value}={view.status}" for view in controller.poller.stage_view(service_id)
        )
        logger.info(f"{service.name}: {stages}")

    if controller.poller.last_error:
        logger.error(f"Polling stopped on error: {controller.poller.last_error}")
        return False
    return True

async def run_watch_session() -> bool:
    settings = get_settings()
    store = RedisCredentialStore(settings=settings)
    async with BackendClient(settings) as client:
        controller = ExecutionController(
            client, store, settings=settings, on_execution_finished=log_finished
        )
        try:
            return await watch_loop(controller)
        finally:
            await store.close()

def run_worker() -> bool:
    """Entry point for the watch session."""
    return asyncio.run(run_watch_session())
