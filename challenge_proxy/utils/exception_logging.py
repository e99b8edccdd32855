"""
Exception logging helpers that also unpack exception groups, as raised by the
anyio task groups Starlette runs streamed responses in.
"""

import logging


def _safe_str(obj) -> str:
    """
    Convert an object to string without ever raising.

    Falls back to repr() and finally to the type name.
    """
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            return f"<{type(obj).__name__} object (string conversion failed)>"


def _sub_exceptions(exception) -> list:
    try:
        return list(getattr(exception, "exceptions", None) or [])
    except Exception:
        return []


def format_exception_message(exception: BaseException) -> str:
    """
    Format an exception message, listing sub-exceptions of exception groups.
    Never raises. An empty message falls back to the exception class name.
    """
    if exception is None:
        return "None"
    try:
        message = _safe_str(exception) or type(exception).__name__
        subs = _sub_exceptions(exception)
        if not subs:
            return message
        parts = [
            f"{type(sub).__name__}: {_safe_str(sub)}" for sub in subs
        ]
        return f"{message} (Sub-exceptions: {'; '.join(parts)})"
    except Exception:
        return f"<{type(exception).__name__} (formatting failed)>"


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: BaseException,
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception, with one extra line per sub-exception for exception groups.
    Logging failures are swallowed so error paths never raise from here.
    """
    try:
        subs = _sub_exceptions(exception)
        if not subs:
            logger.log(
                level,
                f"{prefix} Exception: {format_exception_message(exception)}",
                exc_info=exception if exception is not None else False,
            )
            return

        logger.log(
            level,
            f"{prefix} Exception with {len(subs)} sub-exceptions: {_safe_str(exception)}",
        )
        for i, sub in enumerate(subs):
            logger.log(
                level,
                f"{prefix} Sub-exception {i+1}: {type(sub).__name__}: {_safe_str(sub)}",
                exc_info=sub,
            )
    except Exception:
        try:
            logger.log(logging.ERROR, f"{prefix} Exception logging failed")
        except Exception:
            pass
