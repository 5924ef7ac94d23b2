"""Long polling runner for reminder button presses."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from src.messaging.telegram.callbacks import process_callback_query
from src.messaging.telegram.client import TelegramClientError
from src.messaging.telegram.utils.config import TelegramConfig, get_telegram_settings

if TYPE_CHECKING:
    from src.messaging.telegram.client import TelegramClient
    from src.messaging.telegram.models import TelegramUpdate
    from src.scheduling.lifecycle import OccurrenceLifecycle

logger = logging.getLogger(__name__)


class CallbackPoller:
    """Long polling runner that routes button presses to the lifecycle.

    Runs a loop on its own thread that:
    1. Polls Telegram for callback queries using long polling
    2. Hands each one to ``process_callback_query``
    3. Advances the offset so Telegram drops confirmed updates
    4. Backs off after repeated polling errors

    The offset lives in memory. After a restart Telegram redelivers the last
    unconfirmed batch, and a repeated press on a settled occurrence is
    answered as already handled.
    """

    def __init__(
        self,
        client: TelegramClient,
        lifecycle: OccurrenceLifecycle,
        settings: TelegramConfig | None = None,
    ) -> None:
        """Initialise the poller.

        :param client: Telegram client used for polling and answering.
        :param lifecycle: Occurrence lifecycle the button presses act on.
        :param settings: Telegram settings. If not provided, loads from env.
        """
        self._client = client
        self._lifecycle = lifecycle
        self._settings = settings or get_telegram_settings()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._offset: int | None = None
        self._consecutive_errors = 0

    @property
    def offset(self) -> int | None:
        """Get the offset the next poll starts from."""
        return self._offset

    def start(self) -> None:
        """Run the polling loop on a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Callback poller already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run, name="telegram-callback-poller", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Signal the polling loop to stop.

        A long poll already in flight is not interrupted; the daemon thread
        exits once it returns.
        """
        logger.info("Stopping callback poller...")
        self._stop_event.set()

    def run(self) -> None:
        """Poll until stop() is called."""
        logger.info(f"Starting callback poller: poll_timeout={self._settings.poll_timeout}s")

        while not self._stop_event.is_set():
            try:
                self.poll_once()
                self._consecutive_errors = 0
            except TelegramClientError as e:
                self._handle_polling_error(e)

        logger.info("Callback poller stopped")

    def poll_once(self) -> int:
        """Fetch one batch of updates and process its button presses.

        :returns: Number of updates received.
        :raises TelegramClientError: If polling fails.
        """
        updates = self._client.get_updates(
            offset=self._offset,
            timeout=self._settings.poll_timeout,
        )
        if not updates:
            return 0

        for update in updates:
            self._process_update(update)

        self._offset = max(u.update_id for u in updates) + 1
        return len(updates)

    def _process_update(self, update: TelegramUpdate) -> None:
        if update.callback_query is None:
            logger.debug(f"Ignoring update without callback query: update_id={update.update_id}")
            return

        try:
            process_callback_query(self._client, self._lifecycle, update.callback_query)
            logger.debug(f"Processed callback query: id={update.callback_query.id}")
        except Exception:
            logger.exception(f"Error processing callback query: id={update.callback_query.id}")

    def _handle_polling_error(self, error: TelegramClientError) -> None:
        """Wait before retrying after a polling error.

        Backs off for longer once errors keep repeating.

        :param error: The error that occurred.
        """
        self._consecutive_errors += 1
        logger.warning(f"Polling error (consecutive: {self._consecutive_errors}): {error}")

        if self._consecutive_errors >= self._settings.max_consecutive_errors:
            logger.error(
                f"Max consecutive errors reached ({self._settings.max_consecutive_errors}), "
                f"backing off for {self._settings.backoff_delay}s"
            )
            self._stop_event.wait(self._settings.backoff_delay)
            self._consecutive_errors = 0
        else:
            self._stop_event.wait(self._settings.error_retry_delay)
