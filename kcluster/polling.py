"""
:mod:`~kcluster.polling` turns an eventually-consistent backend query into a
blocking wait with a hard bound.
"""
import time
from logging import getLogger

from .errors import Timeout, BackendError


def poll(probe, interval, timeout, max_attempts=None, clock=time.monotonic,
         sleep=time.sleep, what='condition'):
    """
    Call ``probe`` until it returns something other than ``None``.

    A :class:`.BackendError` raised by the probe counts as "not yet"; any other
    exception propagates immediately. Between attempts the loop sleeps
    ``interval`` seconds, shortened so that the last attempt lands on the
    deadline.

    :param probe: Zero-argument callable returning the result or ``None``
    :param interval: Seconds to wait between attempts
    :param timeout: Seconds after the first attempt at which to give up; the
        wait never gives up before this bound
    :param max_attempts: Optional cap on the number of probe calls
    :param clock: Monotonic clock returning seconds
    :param sleep: Function used to wait
    :param what: Description used in log and error messages
    :raises Timeout: The bound passed and the last attempt said "not yet"
    :raises BackendError: The bound passed and the last attempt failed
    """
    log = getLogger(__name__)
    deadline = clock() + timeout
    attempts = 0
    while True:
        attempts += 1
        last_error = None
        try:
            result = probe()
        except BackendError as err:
            log.debug('Waiting for %s, attempt %d failed: %s', what, attempts,
                      err)
            last_error = err
            result = None
        if result is not None:
            log.debug('%s reached after %d attempt(s)', what, attempts)
            return result

        now = clock()
        exhausted = max_attempts is not None and attempts >= max_attempts
        if now >= deadline or exhausted:
            if last_error is not None:
                raise BackendError('Backend still failing after %d attempt(s) '
                                   'waiting for %s: %s'
                                   % (attempts, what, last_error)) \
                    from last_error
            raise Timeout('Gave up waiting for %s after %d attempt(s)'
                          % (what, attempts))
        log.debug('Waiting for %s (attempt %d)', what, attempts)
        sleep(min(interval, deadline - now))
