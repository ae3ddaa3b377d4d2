"""Run the HTTP listener: python -m communicator."""

import logging

import uvicorn

from communicator.config import settings
from communicator.utils.logging import configure_logging

logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging(settings.log_level, json_format=settings.log_json)
    logger.info("Starting server on %s:%d", settings.host, settings.port)
    uvicorn.run(
        "communicator.interfaces.api.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
