import os
import socket
import sys

from loguru import logger


def format_error(ex: BaseException) -> str:
    try:
        from traceback import TracebackException

        return "".join(TracebackException.from_exception(ex).format())
    except Exception:
        import traceback

        return "".join(traceback.format_exception(type(ex), ex, ex.__traceback__))


def get_client_info() -> tuple[str, str]:
    client_name = os.environ.get("CLIENT_NAME") or socket.gethostname()
    commit_id = os.environ.get("BUILD_COMMIT", "dev")[:8]
    return client_name, commit_id


def init_logger():
    from fancall.app_config import get_app_environ_config

    logger.remove()

    client_name, commit_id = get_client_info()

    if get_app_environ_config().DEBUG:
        logger_level = "DEBUG"
        logger_format = (
            f"<yellow>{client_name}:{commit_id}</yellow> | "
            "<green>{time:MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )
    else:
        logger_level = "INFO"
        logger_format = (
            f"{client_name}:{commit_id} | "
            "{time:MM-DD HH:mm:ss.SSS} | "
            "{level: <8} | "
            "{name}:{function}:{line} | "
            "{message}"
        )
    logger.add(sys.stderr, level=logger_level, format=logger_format)
