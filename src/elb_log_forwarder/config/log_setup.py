"""Logging setup shared by the Lambda handler and the CLI."""

import logging
from typing import Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Chatty third-party loggers capped at WARNING
QUIET_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer")


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Configure root logging.

    Under Lambda the runtime has already installed a handler on the root
    logger; in that case only levels are adjusted so lines are not duplicated.

    Args:
        level: Logging level as int or name (e.g. "DEBUG")
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    root_logger = logging.getLogger()
    if root_logger.handlers:
        root_logger.setLevel(level)
        for handler in root_logger.handlers:
            handler.setLevel(level)
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, level))
