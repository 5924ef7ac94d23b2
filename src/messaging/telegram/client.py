"""Telegram Bot API client for sending reminder messages and reading button presses."""

import json
import logging
from typing import Any

import requests

from src.messaging.telegram.models import (
    InlineKeyboardMarkup,
    SendMessageResult,
    TelegramUpdate,
)

logger = logging.getLogger(__name__)

# Default API timeout in seconds
DEFAULT_REQUEST_TIMEOUT = 30

# Default long polling timeout in seconds
DEFAULT_POLL_TIMEOUT = 30

# Extra seconds the HTTP request may take beyond the long polling timeout
POLL_REQUEST_GRACE = 10

# Update kinds requested from getUpdates
ALLOWED_UPDATES = ("callback_query",)


class TelegramClientError(Exception):
    """Raised when Telegram API request fails."""

    pass


class TelegramClient:
    """Client for the parts of the Telegram Bot API the reminder engine uses."""

    def __init__(
        self,
        *,
        bot_token: str,
        request_timeout: int = DEFAULT_REQUEST_TIMEOUT,
        poll_timeout: int = DEFAULT_POLL_TIMEOUT,
    ) -> None:
        """Initialise the Telegram client.

        :param bot_token: Telegram bot token from @BotFather.
        :param request_timeout: Timeout in seconds for each API request.
        :param poll_timeout: Timeout in seconds for long polling.
        """
        self._bot_token = bot_token
        self._request_timeout = request_timeout
        self._poll_timeout = poll_timeout
        self._base_url = f"https://api.telegram.org/bot{self._bot_token}"
        logger.debug(f"TelegramClient initialised with request_timeout={request_timeout}s")

    def send_message(
        self,
        text: str,
        chat_id: str,
        reply_markup: InlineKeyboardMarkup | None = None,
        parse_mode: str = "HTML",
    ) -> SendMessageResult:
        """Send a text message to a chat.

        :param text: The message text to send.
        :param chat_id: Target chat ID.
        :param reply_markup: Optional inline keyboard.
        :param parse_mode: Message parse mode (HTML or Markdown).
        :returns: Result containing message_id and chat_id.
        :raises TelegramClientError: If the API request fails.
        """
        logger.info(f"Sending message to chat_id={chat_id}")
        payload: dict[str, Any] = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": parse_mode,
            "disable_web_page_preview": True,
        }
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup.model_dump()

        message_data = self._post("sendMessage", payload)
        message_id = message_data.get("message_id")
        response_chat_id = message_data.get("chat", {}).get("id")

        logger.info(f"Message sent successfully: message_id={message_id}, chat_id={chat_id}")
        return SendMessageResult(message_id=message_id, chat_id=response_chat_id)

    def answer_callback_query(
        self,
        callback_query_id: str,
        text: str | None = None,
        show_alert: bool = False,
    ) -> None:
        """Answer a callback query so the client stops its loading indicator.

        :param callback_query_id: ID of the callback query.
        :param text: Optional toast or alert text.
        :param show_alert: Whether to show an alert instead of a toast.
        :raises TelegramClientError: If the API request fails.
        """
        payload: dict[str, Any] = {
            "callback_query_id": callback_query_id,
            "show_alert": show_alert,
        }
        if text:
            payload["text"] = text
        self._post("answerCallbackQuery", payload)

    def edit_message_text(
        self,
        text: str,
        chat_id: str,
        message_id: int,
        reply_markup: InlineKeyboardMarkup | None = None,
        parse_mode: str = "HTML",
    ) -> None:
        """Replace the text of a message already sent.

        :param text: New message text.
        :param chat_id: Chat containing the message.
        :param message_id: Message to edit.
        :param reply_markup: New inline keyboard, or None to remove it.
        :param parse_mode: Message parse mode (HTML or Markdown).
        :raises TelegramClientError: If the API request fails.
        """
        payload: dict[str, Any] = {
            "chat_id": chat_id,
            "message_id": message_id,
            "text": text,
            "parse_mode": parse_mode,
        }
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup.model_dump()
        self._post("editMessageText", payload)

    def get_updates(
        self,
        offset: int | None = None,
        timeout: int | None = None,
    ) -> list[TelegramUpdate]:
        """Get button presses from Telegram using long polling.

        :param offset: Identifier of the first update to be returned.
            Should be one greater than the highest update_id received.
        :param timeout: Timeout in seconds for long polling. If not provided,
            uses the configured poll_timeout.
        :returns: List of updates from Telegram.
        :raises TelegramClientError: If the API request fails.
        """
        url = f"{self._base_url}/getUpdates"
        poll_timeout = timeout if timeout is not None else self._poll_timeout

        params: dict[str, Any] = {
            "timeout": poll_timeout,
            "allowed_updates": json.dumps(list(ALLOWED_UPDATES)),
        }
        if offset is not None:
            params["offset"] = offset

        request_timeout = poll_timeout + POLL_REQUEST_GRACE

        logger.debug(f"Polling for updates: offset={offset}, timeout={poll_timeout}s")

        try:
            response = requests.get(url, params=params, timeout=request_timeout)
            response.raise_for_status()

            result = response.json()
            if not result.get("ok"):
                error_description = result.get("description", "Unknown error")
                raise TelegramClientError(f"Telegram API returned error: {error_description}")

            updates = [TelegramUpdate.model_validate(u) for u in result.get("result", [])]
            if updates:
                logger.debug(f"Received {len(updates)} updates")
            return updates

        except requests.exceptions.Timeout as e:
            raise TelegramClientError(
                f"Telegram API request timed out after {request_timeout}s"
            ) from e
        except requests.exceptions.RequestException as e:
            raise TelegramClientError(f"Telegram API request failed: {e}") from e

    def _post(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}/{method}"
        try:
            response = requests.post(url, json=payload, timeout=self._request_timeout)
            response.raise_for_status()

            result = response.json()
            if not result.get("ok"):
                error_description = result.get("description", "Unknown error")
                raise TelegramClientError(f"Telegram API returned error: {error_description}")

            data = result.get("result", {})
            return data if isinstance(data, dict) else {}

        except requests.exceptions.Timeout as e:
            raise TelegramClientError(
                f"Telegram API request timed out after {self._request_timeout}s"
            ) from e
        except requests.exceptions.RequestException as e:
            raise TelegramClientError(f"Telegram API request failed: {e}") from e
