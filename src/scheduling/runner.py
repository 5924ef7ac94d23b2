"""Long-running process hosting the reminder engine."""

from __future__ import annotations

import logging
import signal
import threading
from types import FrameType

from dotenv import load_dotenv

from src.messaging.telegram.client import TelegramClient
from src.messaging.telegram.notifier import TelegramNotifier
from src.messaging.telegram.polling import CallbackPoller
from src.messaging.telegram.utils.config import get_telegram_settings
from src.observability.sentry import init_sentry
from src.paths import PROJECT_ROOT
from src.scheduling.config import get_scheduler_settings
from src.scheduling.engine import ReminderEngine
from src.utils.logging import configure_logging

logger = logging.getLogger(__name__)


class EngineRunner:
    """Runs a reminder engine until a shutdown signal arrives.

    When a callback poller is given it runs alongside the engine, so button
    presses on delivered reminders reach the lifecycle.
    """

    def __init__(self, engine: ReminderEngine, poller: CallbackPoller | None = None) -> None:
        """Initialise the runner.

        :param engine: The engine to host.
        :param poller: Optional poller feeding button presses to the engine.
        """
        self._engine = engine
        self._poller = poller
        self._shutdown = threading.Event()

    def run(self) -> None:
        """Start the engine and block until stop() is called or a signal arrives."""
        self._setup_signal_handlers()
        report = self._engine.start()
        if report.failed:
            logger.warning(f"{len(report.failed)} reminders failed to register at startup")

        try:
            if self._poller is not None:
                self._poller.start()
            self._shutdown.wait()
        finally:
            if self._poller is not None:
                self._poller.stop()
            self._engine.stop()

    def stop(self) -> None:
        """Request shutdown."""
        self._shutdown.set()

    def _setup_signal_handlers(self) -> None:
        def signal_handler(signum: int, _frame: FrameType | None) -> None:
            logger.info(f"Received shutdown signal: {signal.Signals(signum).name}")
            self.stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            signal.signal(sig, signal_handler)


def main() -> None:
    """Entry point for running the reminder engine."""
    load_dotenv(PROJECT_ROOT / ".env")
    configure_logging()
    init_sentry()

    telegram_settings = get_telegram_settings()
    client = TelegramClient(
        bot_token=telegram_settings.bot_token,
        request_timeout=telegram_settings.request_timeout,
        poll_timeout=telegram_settings.poll_timeout,
    )
    engine = ReminderEngine(TelegramNotifier(client), settings=get_scheduler_settings())
    poller = CallbackPoller(client, engine.lifecycle, settings=telegram_settings)
    EngineRunner(engine, poller=poller).run()
