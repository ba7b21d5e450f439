"""> CPOBingham: logger settings and boilerplate.

.. note:: Always use the old printf style formatting for log messages, not fstrings,
    otherwise compute time may be wasted on string conversions when logging is disabled.
    This matters in the per-particle loops, which can run millions of times.

The methods in this module are thin `logging` wrappers around the package logger
`cpobingham.logger.LOGGER` and its console handler `cpobingham.logger.CONSOLE_LOGGER`.
Applications that embed CPOBingham can get the same logger by name:

>>> import logging
>>> import cpobingham
>>> logger = logging.getLogger("cpobingham")

Console logs are written at `INFO` level to `sys.stderr` by default:

>>> # ELLIPSIS is <stderr> except in test session.
>>> logger.handlers  # doctest: +ELLIPSIS
[<StreamHandler ... (INFO)>]

The following examples use `sys.stdout` instead (`...` represents a timestamp).

>>> import sys
>>> console = logger.handlers[0]
>>> _ = console.setStream(sys.stdout)  # Doctests don't check stderr.
>>> console.formatter.color_enabled = False  # Disable colors in output.
>>> info("computing Bingham averages of %d mineral(s)", 2)  # doctest: +ELLIPSIS
INFO [...] cpobingham: computing Bingham averages of 2 mineral(s)
>>> console.setLevel(logging.ERROR)
>>> debug("drawing %d samples", 100)
>>> error("no %s property plugin found", "CPO")  # doctest: +ELLIPSIS
ERROR [...] cpobingham: no CPO property plugin found
>>> console.setLevel(logging.INFO)
>>> _ = console.setStream(sys.stderr)

The console level can be changed temporarily with `cpobingham.io.log_cli_level`,
and `cpobingham.io.logfile_enable` additionally saves logs to a file, which is what
the `cpobingham` command line tool does next to its output.
The method `quiet_aliens` can be invoked to suppress logging messages from dependencies
such as numba, which is very chatty at DEBUG level.

"""

import functools as ft
import logging
import sys

import numpy as np

# NOTE: Do NOT import any cpobingham submodules here to avoid cyclical imports.

# Scatter tensors and eigenvectors in log and error messages.
np.set_printoptions(
    formatter={
        "float_kind": np.format_float_scientific,
        "object": ft.partial(np.array2string, separator=", "),
    },
    linewidth=1000,
)


class ConsoleFormatter(logging.Formatter):
    """Log formatter that uses terminal color codes."""

    colors = {
        logging.CRITICAL: "1;31",
        logging.ERROR: "31",
        logging.WARNING: "33",
        logging.INFO: "32",
        logging.DEBUG: "34",
    }

    def colorfmt(self, code):
        # Color enabled by default, disabled by setting `.color_enabled` = False.
        if not getattr(self, "color_enabled", True) or code is None:
            return "%(levelname)s [%(asctime)s] %(name)s: %(message)s"
        return (
            f"\033[{code}m%(levelname)s [%(asctime)s]\033[m"
            + " \033[1m%(name)s:\033[m %(message)s"
        )

    def format(self, record):
        self._style._fmt = self.colorfmt(self.colors.get(record.levelno))
        return super().format(record)


LOGGER = logging.getLogger("cpobingham")
# Handlers filter by their own level, so the logger itself passes everything.
LOGGER.setLevel(logging.DEBUG)
CONSOLE_LOGGER = logging.StreamHandler()
CONSOLE_LOGGER.setFormatter(ConsoleFormatter(datefmt="%H:%M"))
CONSOLE_LOGGER.setLevel(logging.INFO)
LOGGER.addHandler(CONSOLE_LOGGER)


def handle_exception(exec_type, exec_value, exec_traceback):
    # Ignore KeyboardInterrupt so ^C (ctrl + C) works as expected.
    if issubclass(exec_type, KeyboardInterrupt):
        sys.__excepthook__(exec_type, exec_value, exec_traceback)
        return
    # Send other exceptions to the logger, and to the log file of the CLI if enabled.
    LOGGER.exception(
        "uncaught exception", exc_info=(exec_type, exec_value, exec_traceback)
    )


sys.excepthook = handle_exception


def error(msg, *args, **kwargs):
    """Log an ERROR message in CPOBingham."""
    LOGGER.error(msg, *args, **kwargs)


def warning(msg, *args, **kwargs):
    """Log a WARNING message in CPOBingham."""
    LOGGER.warning(msg, *args, **kwargs)


def info(msg, *args, **kwargs):
    """Log an INFO message in CPOBingham."""
    LOGGER.info(msg, *args, **kwargs)


def debug(msg, *args, **kwargs):
    """Log a DEBUG message in CPOBingham."""
    LOGGER.debug(msg, *args, **kwargs)


def quiet_aliens(root_level=logging.WARNING, level=logging.CRITICAL):
    """Restrict alien loggers.

    .. note:: Primarily intended for internal use (test suite/development).

    - `root_level` sets the level for the "root" logger
    - `level` sets the level for everything else (except "cpobingham")

    """
    logging.getLogger().setLevel(root_level)
    for name in logging.Logger.manager.loggerDict.keys():
        if name != "cpobingham":
            logging.getLogger(name).setLevel(level)
