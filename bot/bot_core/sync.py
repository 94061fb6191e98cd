"""
Sync loop — the single background thread that long-polls for new events.

One iteration:
  1. sync_check (held open by the server until something happens)
  2. heartbeat hook with the raw signal
  3. bad retcode → raise RetError
  4. selector "0" → poll again, no backoff
  5. otherwise web_sync, advance the cursor, then dispatch each message in order

Errors leave ``poll_forever`` and go to the error classifier; the outer loop
in ``run`` restarts polling or ends the session.
"""

import threading

import requests

from .config import log
from .errors import BotError
from .message import Message


class SyncLoop:

    def __init__(self, bot, lifecycle):
        self.bot = bot
        self.lifecycle = lifecycle
        self.thread = None

    def start(self):
        self.thread = threading.Thread(target=self.run, name="bot-sync", daemon=True)
        self.thread.start()
        return self.thread

    def alive(self):
        return self.bot.alive() and not self.lifecycle.cancelled.is_set()

    # ─── Outer loop: classify and continue / stop ────────────

    def run(self):
        classifier = self.bot.error_classifier()
        log.info("Sync loop started (uuid=%s)", self.bot.uuid or "-")
        stop_error = None

        while self.alive():
            try:
                self.poll_forever()
                continue
            except (requests.RequestException, BotError) as e:
                err = e
            except Exception as e:
                log.error("Unexpected error in sync loop: %s", e, exc_info=True)
                err = e

            if not self.alive():
                break
            try:
                keep_going = classifier(err)
            except Exception as e:
                log.error("Error classifier failed: %s", e, exc_info=True)
                keep_going = False
            if not keep_going:
                stop_error = err
                break

        if stop_error is not None:
            self.bot.teardown(stop_error, self.lifecycle)
        log.info("Sync loop finished%s", f" ({stop_error})" if stop_error else "")

    # ─── Inner loop: poll until error or exit ────────────────

    def poll_forever(self):
        caller = self.bot.caller
        hooks = self.bot.hooks

        while self.alive():
            request, info, response = self.bot.session_snapshot()
            resp = caller.sync_check(request, info, response)

            if hooks.sync_check_callback is not None:
                hooks.sync_check_callback(resp)

            if not resp.success():
                raise resp.err()

            if resp.normal():
                continue

            messages = self.sync_message(request, info, response)
            if hooks.message_handler is None:
                continue
            for message in messages:
                message.init(self.bot)
                hooks.message_handler(message)

    def sync_message(self, request, info, response):
        """Fetch new events and move the cursor before anyone sees them."""
        resp = self.bot.caller.web_sync(request, response, info)
        self.bot.advance_cursor(resp.sync_key)
        return [m if isinstance(m, Message) else Message(m) for m in resp.add_msg_list]
