"""
Error classifiers: decide whether the sync loop keeps polling after a failure.

A classifier is any callable ``(error) -> bool``; True means keep going.
"""

import time

from .config import log
from .errors import FATAL_RETS, RetError


class ErrorClassifier:
    """Base strategy. Subclasses override ``classify``."""

    def classify(self, err) -> bool:
        raise NotImplementedError

    def __call__(self, err) -> bool:
        return self.classify(err)


class DefaultErrorClassifier(ErrorClassifier):
    """
    Stop on the statuses that mean the remote side already ended the session
    (stale cookie, logged out elsewhere, login check failed). The teardown is
    local only; there is no session left to log out of. Everything else,
    transport errors included, is retried immediately.
    """

    def __init__(self, bot, fatal_rets=FATAL_RETS):
        self.bot = bot
        self.fatal_rets = frozenset(fatal_rets)

    def is_fatal(self, err):
        return isinstance(err, RetError) and err.ret in self.fatal_rets

    def classify(self, err):
        if self.is_fatal(err):
            log.error("Sync stopped by remote status: %s", err)
            self.bot.teardown(err)
            return False
        log.warning("Sync error (retrying): %s", err)
        return True


class BackoffErrorClassifier(ErrorClassifier):
    """
    Wraps another classifier and sleeps before each retry it allows:
    initial, 2x, 4x, ... capped at ``max_delay``. The wait ends early when
    the bot exits. Delay resets after a quiet period of ``2 * max_delay``.
    """

    def __init__(self, bot, inner=None, initial_delay=5, max_delay=120):
        self.bot = bot
        self.inner = inner if inner is not None else DefaultErrorClassifier(bot)
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self._delay = initial_delay
        self._last_failure = None

    def classify(self, err):
        if not self.inner(err):
            return False

        now = time.monotonic()
        if self._last_failure is not None and now - self._last_failure > 2 * self.max_delay:
            self._delay = self.initial_delay
        self._last_failure = now

        delay = self._delay
        self._delay = min(self._delay * 2, self.max_delay)
        log.info("Retrying sync in %ss...", delay)
        # True → cancelled while waiting; the loop sees that on its next check.
        self.bot.wait_exit(delay)
        return True
