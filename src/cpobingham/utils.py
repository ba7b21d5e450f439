"""> CPOBingham: Miscellaneous utility methods."""

import os
import platform
import subprocess

from cpobingham import logger as _log


def import_proc_pool():
    """Import either `ray.util.multiprocessing.Pool` or `multiprocessing.Pool`.

    Import a process `Pool` object either from Ray of from Python's stdlib.
    Both offer the same API, the Ray implementation will be preferred if available.
    Using the `Pool` provided by Ray allows for distributed memory multiprocessing.

    Returns a tuple containing the `Pool` object and a boolean flag which is `True` if
    Ray is available.

    """
    try:
        from ray.util.multiprocessing import Pool

        has_ray = True
    except ImportError:
        from multiprocessing import Pool

        has_ray = False
    return Pool, has_ray


def default_ncpus():
    """Get a safe default number of CPUs available for multiprocessing.

    On Linux platforms that support it, the method `os.sched_getaffinity()` is used.
    On Mac OS, the command `sysctl -n hw.ncpu` is used.
    On Windows, the environment variable `NUMBER_OF_PROCESSORS` is queried.
    If any of these fail, a fallback of 1 is used and a warning is logged.

    """
    try:
        match platform.system():
            case "Linux":
                return max(1, len(os.sched_getaffinity(0)) - 1)
            case "Darwin":
                # May raise CalledProcessError.
                out = subprocess.run(
                    ["sysctl", "-n", "hw.ncpu"], capture_output=True, check=True
                )
                return max(1, int(out.stdout.strip()) - 1)
            case "Windows":
                return max(1, int(os.environ["NUMBER_OF_PROCESSORS"]) - 1)
    except (AttributeError, subprocess.CalledProcessError, KeyError):
        pass
    _log.warning("unable to determine number of available CPUs, using 1")
    return 1


def chunks(sequence, n_chunks):
    """Split `sequence` into at most `n_chunks` contiguous chunks of similar length.

    >>> chunks([1, 2, 3, 4, 5], 2)
    [[1, 2, 3], [4, 5]]
    >>> chunks([1, 2], 4)
    [[1], [2]]

    """
    _sequence = list(sequence)
    n_chunks = max(1, min(n_chunks, len(_sequence)))
    size, remainder = divmod(len(_sequence), n_chunks)
    out = []
    start = 0
    for i in range(n_chunks):
        stop = start + size + (1 if i < remainder else 0)
        out.append(_sequence[start:stop])
        start = stop
    return out
