"""Logging setup shared by every module."""

import logging

LOG_FORMAT = '%(asctime)s %(levelname)-7s %(name)s | %(message)s'


def configure(level=logging.INFO):
    """Attach one stderr handler to the package logger, once."""
    root = logging.getLogger('planner_pdf')
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)
    return root


def get_logger(name):
    return logging.getLogger(name)
