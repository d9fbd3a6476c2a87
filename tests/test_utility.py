from time import time

from EzSelect.utility import run_time


def test_run_time():
    message = run_time(time() - 3725.5)
    assert message.startswith('Run time: 1 hours: 2 minutes: 5.')
