"""> CPOBingham: Custom exceptions (subclasses of `cpobingham.Error`).

Configuration problems are detected before any averages are computed and raise a
`ConfigError`. An `IterationError` from the eigen-solver means that the scatter tensor
was not finite, which points to corrupt grain data upstream.

"""


class Error(Exception):
    """Base class for exceptions in CPOBingham.

    Attributes:
        message — explanation of the error

    """

    def __init__(self, message):  # pylint: disable=super-init-not-called
        self.message = message

    def __str__(self):
        return self.message


class ConfigError(Error):
    """Exception raised for errors in the input configuration.

    This includes invalid parameter values and a missing or misordered
    upstream CPO particle property.

    """


class IterationError(Error):
    """Exception raised when an iterative scheme fails to converge.

    Attributes:
        message — explanation of the error
        iterations — number of iterations (e.g. Jacobi sweeps) that were attempted

    """

    def __init__(self, message, iterations=None):
        super().__init__(message)
        self.iterations = iterations


class SCSVError(Error):
    """Exception raised for errors in SCSV file I/O."""
