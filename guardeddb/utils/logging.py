"""
Logging utilities for GuardedDB.

Besides the usual logger configuration helpers this module holds the query
log: a per-handler sink that records every statement attempt with sensitive
values masked.
"""

import logging
import os
import re
import sys
from typing import Optional, Union, Any, Sequence, Callable, Iterable, List, TextIO

try:
    import fcntl
except ImportError:  # Windows
    fcntl = None

# Default logging format
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

QUERY_LOG_FORMAT = "[%(asctime)s] %(message)s"
QUERY_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

MASK = "******"
SENSITIVE_NAME_RE = re.compile(r"password|token", re.IGNORECASE)
SENSITIVE_LITERAL_RE = re.compile(r"""(password|token)\s*=\s*(["']).*?\2""", re.IGNORECASE)
_PLACEHOLDER_RE = re.compile(r"\?")


def configure_logger(
    name: str = "guardeddb",
    level: Union[int, str] = logging.INFO,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = None,
    log_to_console: bool = True,
    propagate: bool = True
) -> logging.Logger:
    """
    Configure the library's diagnostic logger.

    This is separate from the per-handler query log. When ``log_file`` is
    given, records are appended through ``LockingFileHandler``, so the file
    may be shared with a query log or with other processes.

    Args:
        name: Logger name
        level: Logging level
        log_format: Format string for log messages
        log_file: Optional file to append to
        log_to_console: Whether to log to stdout
        propagate: Whether to propagate to parent loggers

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    if isinstance(level, str):
        level = getattr(logging, level.upper())
    logger.setLevel(level)

    formatter = logging.Formatter(log_format)

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        file_handler = LockingFileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = propagate

    return logger


def _ensure_log_dir(log_file: str) -> None:
    log_dir = os.path.dirname(log_file)
    if log_dir and not os.path.isdir(log_dir):
        os.makedirs(log_dir, mode=0o750, exist_ok=True)


class LockingFileHandler(logging.FileHandler):
    """
    File handler that appends each record under an exclusive ``flock``.

    Several processes may share one log file; a record is always written
    whole.
    """

    def __init__(self, filename: str, encoding: str = "utf-8"):
        _ensure_log_dir(filename)
        super().__init__(filename, mode="a", encoding=encoding, delay=True)

    def emit(self, record: logging.LogRecord) -> None:
        if self.stream is None:
            try:
                self.stream = self._open()
            except OSError:
                self.handleError(record)
                return

        if fcntl is None:
            super().emit(record)
            return

        fd = self.stream.fileno()
        fcntl.flock(fd, fcntl.LOCK_EX)
        try:
            super().emit(record)
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)


def escape_literal(value: Any) -> str:
    """Render a value as a quoted literal for log output."""
    if value is None:
        return "NULL"
    text = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{text}'"


def is_sensitive(name: Optional[str], value: Any) -> bool:
    """True if a bound value must not appear in a log entry."""
    if name is not None and SENSITIVE_NAME_RE.search(str(name)):
        return True
    return isinstance(value, str) and SENSITIVE_NAME_RE.search(value) is not None


def render_sql(sql: str, values: Sequence[Any], names: Optional[Sequence[Optional[str]]] = None,
               escape: Callable[[Any], str] = escape_literal) -> str:
    """
    Substitute each ``?`` in ``sql`` with its value for display.

    Placeholders are replaced left to right in a single pass, so a ``?``
    inside a substituted value is never itself replaced. Sensitive values
    are shown as ``'******'``. Surplus placeholders are left as they are.
    """
    names = list(names or ())
    rendered = []
    for i, value in enumerate(values):
        name = names[i] if i < len(names) else None
        rendered.append(f"'{MASK}'" if is_sensitive(name, value) else escape(value))

    remaining = iter(rendered)

    def _next(match):
        return next(remaining, match.group(0))

    return _PLACEHOLDER_RE.sub(_next, sql)


def mask_sql_literals(sql: str) -> str:
    """Strip ``password = '...'`` style literals out of raw SQL."""
    return SENSITIVE_LITERAL_RE.sub(lambda m: f"{m.group(1)}={MASK}", sql)


def sensitive_values(values: Sequence[Any], names: Optional[Sequence[Optional[str]]] = None) -> List[str]:
    """Text of every bound value that ``render_sql`` would mask."""
    names = list(names or ())
    secrets = []
    for i, value in enumerate(values):
        name = names[i] if i < len(names) else None
        if value is not None and is_sensitive(name, value):
            text = str(value)
            if text:
                secrets.append(text)
    return secrets


def mask_values(text: str, secrets: Iterable[str]) -> str:
    """Replace every occurrence of each secret in ``text`` with the mask."""
    # longest first, so a secret that contains another is masked whole
    for secret in sorted(set(secrets), key=len, reverse=True):
        text = text.replace(secret, MASK)
    return text


class QueryLogger:
    """
    Masked log of statement attempts and failures.

    Entries look like ``[timestamp] LABEL\\n<body>\\n\\n``. They are appended
    to ``log_file`` only when ``debug`` is on, and echoed to ``echo_stream``
    (stdout by default) only when a call asks for it.
    """

    def __init__(self, log_file: str, debug: bool = False,
                 echo_stream: Optional[TextIO] = None,
                 escape: Callable[[Any], str] = escape_literal):
        self.log_file = log_file
        self.debug = debug
        self.echo_stream = echo_stream
        self.escape = escape
        self.formatter = logging.Formatter(QUERY_LOG_FORMAT, datefmt=QUERY_LOG_DATEFMT)

        # Not registered with logging.getLogger: one sink per handler
        self._logger = logging.Logger("guardeddb.querylog", logging.DEBUG)
        self._logger.propagate = False
        self._handler = None

    def _sink(self) -> logging.Logger:
        if self._handler is None:
            self._handler = LockingFileHandler(self.log_file)
            self._handler.terminator = "\n\n"
            self._handler.setFormatter(self.formatter)
            self._logger.addHandler(self._handler)
        return self._logger

    def write(self, label: str, body: str, echo: bool = False, force: bool = False) -> str:
        """
        Write one entry.

        The entry goes to the log file when debug is on, or when ``force``
        is set.

        Returns:
            The formatted entry, as it would appear in the log file
        """
        record = self._logger.makeRecord(
            self._logger.name, logging.DEBUG, __file__, 0, f"{label}\n{body}", None, None)
        entry = self.formatter.format(record) + "\n\n"

        if self.debug or force:
            self._sink().handle(record)
        if echo:
            stream = self.echo_stream or sys.stdout
            stream.write(entry)
            stream.flush()
        return entry

    def log_attempt(self, sql: str, values: Sequence[Any], context: str = "",
                    names: Optional[Sequence[Optional[str]]] = None, echo: bool = False) -> str:
        """
        Log an executed statement with its values inlined.

        Args:
            sql: SQL text with ``?`` placeholders
            values: Bound values in placeholder order
            context: Operation label, e.g. ``INSERT``
            names: Parameter names aligned with ``values``; None where unnamed
            echo: Also write the entry to the echo stream
        """
        body = render_sql(sql, values, names, self.escape)
        label = f"DEBUG {context}" if context else "DEBUG"
        return self.write(label, body, echo)

    def log_failure(self, context: str, sql: str, error_message: str, echo: bool = False,
                    secrets: Iterable[str] = ()) -> str:
        """
        Log a failed operation with password/token literals masked.

        Driver errors may quote a rejected value back (``Duplicate entry
        '...'``), so every string in ``secrets`` is masked in both the SQL
        and the error message.
        """
        secrets = list(secrets)
        sql = mask_values(mask_sql_literals(sql or ''), secrets)
        error_message = mask_values(str(error_message), secrets)
        body = f"SQL => {sql}\nError => {error_message}"
        return self.write(f"{context} failed:", body, echo)

    def close(self) -> None:
        if self._handler is not None:
            self._logger.removeHandler(self._handler)
            self._handler.close()
            self._handler = None
