"""> Configuration and fixtures for CPOBingham tests."""

import sys

import numpy as np
import pytest
from _pytest.logging import LoggingPlugin, _LiveLoggingStreamHandler

from cpobingham import logger as _log

_log.quiet_aliens()  # Stop imported modules from spamming the logs.


# Set up custom pytest CLI arguments.
def pytest_addoption(parser):
    parser.addoption(
        "--outdir",
        metavar="DIR",
        default=None,
        help="output directory in which to store CPOBingham outputs/logs",
    )


# The default pytest logging plugin always creates its own handlers...
class PytestConsoleLogger(LoggingPlugin):
    """Pytest plugin that allows linking up a custom console logger."""

    name = "pytest-console-logger"

    def __init__(self, config, *args, **kwargs):
        super().__init__(config, *args, **kwargs)
        terminal_reporter = config.pluginmanager.get_plugin("terminalreporter")
        capture_manager = config.pluginmanager.get_plugin("capturemanager")
        handler = _LiveLoggingStreamHandler(terminal_reporter, capture_manager)
        handler.setFormatter(_log.CONSOLE_LOGGER.formatter)
        handler.setLevel(_log.CONSOLE_LOGGER.level)
        self.log_cli_handler = handler

    # Override original, which tries to delete some silly globals that we aren't
    # using anymore, this might break the (already quite broken) -s/--capture.
    @pytest.hookimpl(hookwrapper=True)
    def pytest_runtest_teardown(self, item):
        self.log_cli_handler.set_when("teardown")
        yield from self._runtest_for(item, "teardown")


@pytest.hookimpl(trylast=True)
def pytest_configure(config):
    # Hook up our logging plugin last,
    # it relies on terminalreporter and capturemanager.
    if config.option.verbose > 0:
        config.pluginmanager.register(
            PytestConsoleLogger(config), PytestConsoleLogger.name
        )


@pytest.fixture(scope="session")
def verbose(request):
    return request.config.option.verbose


@pytest.fixture(scope="session")
def outdir(request):
    return request.config.getoption("--outdir")


@pytest.fixture(scope="session")
def named_tempfile_kwargs(request):
    if sys.platform == "win32":
        return {"delete": False}
    else:
        return dict()


@pytest.fixture(scope="session")
def seed():
    """Default seed for test RNG."""
    return 8816


@pytest.fixture(scope="session", params=[1, 3, 27, 8816])
def seeds(request):
    return request.param


class FixedDraws:
    """Stand-in for a random number generator that returns prescribed draws."""

    def __init__(self, draws):
        self.draws = np.asarray(draws, dtype=np.float64)
        self.calls = 0

    def random(self, size=None):
        self.calls += 1
        if size is None:
            return self.draws[0]
        if size != len(self.draws):
            raise ValueError(f"expected {len(self.draws)} draws, not {size}")
        return self.draws.copy()


@pytest.fixture
def fixed_draws():
    """Factory of generators that return prescribed uniform draws."""
    return FixedDraws


@pytest.fixture(scope="session")
def rotations_z90():
    """Identity rotated by 0°, 90°, 180° and 270° around Z (passive, rows are axes)."""
    return np.array(
        [
            [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]],
            [[0.0, 1.0, 0.0], [-1.0, 0.0, 0.0], [0.0, 0.0, 1.0]],
            [[-1.0, 0.0, 0.0], [0.0, -1.0, 0.0], [0.0, 0.0, 1.0]],
            [[0.0, -1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0]],
        ]
    )
