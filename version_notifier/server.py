import logging
import uvicorn
from version_notifier.core.config import settings
from version_notifier.core.logging import setup_logging

setup_logging()
logger = logging.getLogger("server")


def main():
    logger.info(
        "Starting %s on %s:%d env=%s", settings.APP_NAME, settings.HOST, settings.PORT,
        settings.ENVIRONMENT,
    )
    # single worker: the broadcaster is per process
    uvicorn.run(
        "version_notifier.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,
    )


if __name__ == "__main__":
    main()
