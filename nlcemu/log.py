# Module: nlcemu.log
# Purpose: Shared Loguru access for nlcemu modules, plus an opt-in sink
#          initializer for applications and scripts.

from __future__ import annotations

import os
import sys
from typing import Optional

from loguru import logger

_SINK_ID: Optional[int] = None

# Silent as a library until an application opts in
logger.disable("nlcemu")


def init_logging(
    level: Optional[str] = None,
    *,
    colorize: bool = True,
    backtrace: bool = False,
    diagnose: bool = False,
) -> logger.__class__:
    """
    Install (or replace) the nlcemu stderr sink. Sinks added by the host
    application are left alone; a second call removes only the sink the
    previous call installed.

    Log level priority:
      1) `level` arg
      2) env NLCEMU_LOG_LEVEL
      3) env NLCEMU_DEBUG -> DEBUG
      4) default WARNING
    """
    global _SINK_ID
    env_level = os.getenv("NLCEMU_LOG_LEVEL")
    if level:
        level_final = str(level).upper()
    elif env_level:
        level_final = env_level.upper()
    elif os.getenv("NLCEMU_DEBUG"):
        level_final = "DEBUG"
    else:
        level_final = "WARNING"

    logger.enable("nlcemu")
    if _SINK_ID is not None:
        logger.remove(_SINK_ID)
    _SINK_ID = logger.add(
        sys.stderr,
        level=level_final,
        colorize=colorize,
        backtrace=backtrace,
        diagnose=diagnose,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <7}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
    )

    logger.debug("Logging initialized at level {}", level_final)
    return logger


def get_logger() -> logger.__class__:
    """
    Convenience accessor so modules can do:

        from nlcemu.log import get_logger
        log = get_logger()
        log.debug("table built")

    Does not touch the configured sinks.
    """
    return logger
