"""Command-line preload: sign in from env and warm the local cache"""
import asyncio
import logging

from track_anything.config import (
    LOG_LEVEL,
    TRACK_ANYTHING_ACCESS_TOKEN,
    TRACK_ANYTHING_USER_ID,
    validate_config,
)
from track_anything.container import init_container
from track_anything.exceptions import ConfigurationError
from track_anything.monitoring import init_sentry

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL)
)

logger = logging.getLogger(__name__)


async def main() -> None:
    """Main application entry point"""
    container = None
    try:
        logger.info("Validating configuration...")
        validate_config()
        if not TRACK_ANYTHING_USER_ID:
            raise ConfigurationError(
                "TRACK_ANYTHING_USER_ID is required",
                config_key="TRACK_ANYTHING_USER_ID"
            )

        init_sentry()

        container = init_container()

        # Signing in triggers the DataSync preload
        logger.info(f"Signing in as {TRACK_ANYTHING_USER_ID}...")
        await container.session.sign_in(
            TRACK_ANYTHING_USER_ID,
            TRACK_ANYTHING_ACCESS_TOKEN or None
        )
        await container.runner.drain()

        counts = container.data_sync.last_counts
        if counts is None:
            logger.warning("Preload did not complete; see errors above")
        else:
            logger.info(f"Local cache ready: {counts}")

    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
    finally:
        if container:
            logger.info("Closing remote client...")
            await container.aclose()

        logger.info("Shutdown complete")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
