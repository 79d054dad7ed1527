"""
Shared helpers.
"""
import logging

from bounty_rbac.core import config


logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger sharing the application's root configuration."""
    return logging.getLogger(name)
