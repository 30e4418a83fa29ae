import os

import uvicorn

from app.platform.config import settings
from app.platform.logger import get_logger

logger = get_logger("link_audit")


def run():
    if "PORT" not in os.environ:
        logger.info(f"No PORT environment variable detected, defaulting to {settings.PORT}")

    logger.info(f"Server started at :{settings.PORT}")
    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    run()
