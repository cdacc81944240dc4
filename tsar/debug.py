"""Diagnostic messages on standard error, with a fatal level that aborts."""

import enum
import sys
import time


class LogLevel(enum.IntEnum):
    """Severity of a diagnostic message, lowest first."""

    INFO = 0
    DEBUG = 1
    WARN = 2
    ERR = 3
    FATAL = 4


class FatalError(RuntimeError):
    """Raised for a message logged at the FATAL level."""


def do_debug(level, message, threshold=LogLevel.ERR):
    """Write ``message`` to stderr if ``level`` reaches ``threshold``.

    Returns whether the message was written. A FATAL message always
    raises :class:`FatalError` after it has been reported.
    """
    level = LogLevel(level)
    emitted = level >= threshold
    if emitted:
        stamp = time.asctime(time.localtime())
        text = message if message.endswith("\n") else message + "\n"
        sys.stderr.write(f"[{stamp}] {text}")
        sys.stderr.flush()
    if level == LogLevel.FATAL:
        raise FatalError(message.strip())
    return emitted