"""
Utility functions for the codriver package.
"""

import logging
from typing import Union

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
HANDLER_NAME = 'quantalogic_codriver'


def configure_logging(level: Union[int, str] = logging.DEBUG) -> logging.Logger:
    """
    Set the package logger level and attach a stream handler once.

    Args:
        level: A logging level number or name such as "DEBUG".

    Returns:
        logging.Logger: The package logger.
    """
    package_logger = logging.getLogger('quantalogic_codriver')
    package_logger.setLevel(level.upper() if isinstance(level, str) else level)
    if not any(h.get_name() == HANDLER_NAME for h in package_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.set_name(HANDLER_NAME)
        package_logger.addHandler(handler)
    return package_logger
