"""
Pipeline controller - watch session entry point.
"""

import logging
import sys

from controller.src.config import get_settings
from controller.src.worker import run_worker

def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )

logger = logging.getLogger(__name__)

def main():
    """Main entry point."""
    settings = get_settings()
    configure_logging(settings.log_level)

    logger.info("Starting pipeline controller")
    logger.info(f"Backend URL: {settings.backend_url}")
    logger.info(f"Poll interval: {settings.poll_interval}s, grace polls: {settings.grace_poll_count}")

    try:
        ok = run_worker()
    except KeyboardInterrupt:
        logger.info("Controller shutting down...")
        return
    except Exception as e:
        logger.error(f"Watch session failed: {e}")
        sys.exit(1)

    if not ok:
        sys.exit(1)

if __name__ == "__main__":
    main()
