"""
Miscellaneous helpers
"""

import logging
from time import time

logger = logging.getLogger(__name__)


def run_time(start_time):
    """
    Details
    -------
    Logs the time passed between start_time and now in hours, minutes, seconds.

    Parameters
    ----------
    start_time : float
        The initial time obtained via time().

    Returns
    -------
    message : str
    """

    time_seconds = time() - start_time
    time_hours = int(time_seconds / 3600)
    time_minutes = int(time_seconds / 60) - time_hours * 60
    time_seconds = time_seconds - time_minutes * 60 - time_hours * 3600
    message = f"Run time: {time_hours:.0f} hours: {time_minutes:.0f} minutes: {time_seconds:.2f} seconds"
    logger.info(message)

    return message
