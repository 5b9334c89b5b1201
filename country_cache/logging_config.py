import logging

from country_cache.config import Config

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level=None):
    """Configure the root logger once for the whole process."""
    logging.basicConfig(
        level=(level or Config.log_level).upper(),
        format=LOG_FORMAT,
    )
    # uvicorn's access log duplicates the request logging middleware
    logging.getLogger("uvicorn.access").disabled = True
