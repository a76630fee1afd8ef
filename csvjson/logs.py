import logging

from prefect.exceptions import MissingContextError
from prefect.logging import get_logger, get_run_logger


def resolve_logger() -> logging.Logger | logging.LoggerAdapter:
    """Run logger inside a Prefect flow/task, the package logger otherwise."""
    try:
        return get_run_logger()
    except MissingContextError:
        return get_logger("csvjson")
