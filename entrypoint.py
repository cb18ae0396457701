import os

import uvicorn

from logging_config import get_logger, setup_logging

# Setup logging before importing app so module loggers pick it up
setup_logging(log_level=os.getenv("LOG_LEVEL", "DEBUG"), log_file=os.getenv("LOG_FILE", None))
logger = get_logger(__name__)


def main():
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 8000))
    reload = os.getenv("RELOAD", "false").lower() == "true"
    logger.info(f"Starting Guest History server on {host}:{port} (reload={reload})")
    uvicorn.run("app:app", host=host, port=port, reload=reload, log_config=None)


if __name__ == "__main__":
    main()
