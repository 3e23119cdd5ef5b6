"""Logging setup for applications that embed graphpersist.

The library itself only logs through module loggers and never configures
handlers; call :func:`configure_logging` from an application entry point.
"""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with a terse format.

    Parameters mirror ``logging.basicConfig``. Pass ``force=True`` to
    reconfigure during tests or specialised entry points.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
