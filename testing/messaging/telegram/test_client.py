"""Tests for Telegram client module."""

import unittest
from unittest.mock import MagicMock, patch

import requests

from src.messaging.telegram.client import (
    DEFAULT_POLL_TIMEOUT,
    DEFAULT_REQUEST_TIMEOUT,
    POLL_REQUEST_GRACE,
    TelegramClient,
    TelegramClientError,
)
from src.messaging.telegram.models import InlineKeyboardButton, InlineKeyboardMarkup


def _ok_response(result: object) -> MagicMock:
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = {"ok": True, "result": result}
    return response


class TestTelegramClientInitialisation(unittest.TestCase):
    """Tests for TelegramClient initialisation."""

    def test_initialisation(self) -> None:
        """Test the token is kept and built into the base URL."""
        client = TelegramClient(bot_token="test-token")

        self.assertEqual(client._bot_token, "test-token")
        self.assertIn("test-token", client._base_url)
        self.assertEqual(client._request_timeout, DEFAULT_REQUEST_TIMEOUT)

    def test_request_timeout_configuration(self) -> None:
        """Test that request_timeout can be configured."""
        client = TelegramClient(bot_token="test-token", request_timeout=5)

        self.assertEqual(client._request_timeout, 5)


class TestTelegramClientSendMessage(unittest.TestCase):
    """Tests for TelegramClient.send_message method."""

    @patch("src.messaging.telegram.client.requests.post")
    def test_send_message_success(self, mock_post: MagicMock) -> None:
        """Test successful message sending returns SendMessageResult."""
        mock_post.return_value = _ok_response({"message_id": 123, "chat": {"id": 12345}})

        client = TelegramClient(bot_token="test-token")
        result = client.send_message("Hello, World!", chat_id="12345")

        self.assertEqual(result.message_id, 123)
        self.assertEqual(result.chat_id, 12345)
        call_kwargs = mock_post.call_args.kwargs
        self.assertTrue(mock_post.call_args.args[0].endswith("/sendMessage"))
        self.assertEqual(call_kwargs["json"]["chat_id"], "12345")
        self.assertEqual(call_kwargs["json"]["text"], "Hello, World!")
        self.assertEqual(call_kwargs["json"]["parse_mode"], "HTML")
        self.assertNotIn("reply_markup", call_kwargs["json"])
        self.assertEqual(call_kwargs["timeout"], DEFAULT_REQUEST_TIMEOUT)

    @patch("src.messaging.telegram.client.requests.post")
    def test_send_message_with_keyboard(self, mock_post: MagicMock) -> None:
        """Test the inline keyboard is serialised into the payload."""
        mock_post.return_value = _ok_response({"message_id": 1, "chat": {"id": 1}})
        keyboard = InlineKeyboardMarkup(
            inline_keyboard=[[InlineKeyboardButton(text="Done", callback_data="x")]]
        )

        TelegramClient(bot_token="test-token").send_message(
            "Hi", chat_id="1", reply_markup=keyboard
        )

        self.assertEqual(
            mock_post.call_args.kwargs["json"]["reply_markup"],
            {"inline_keyboard": [[{"text": "Done", "callback_data": "x"}]]},
        )

    @patch("src.messaging.telegram.client.requests.post")
    def test_api_error_raises(self, mock_post: MagicMock) -> None:
        """Test a not-ok response raises TelegramClientError."""
        response = MagicMock()
        response.json.return_value = {"ok": False, "description": "chat not found"}
        mock_post.return_value = response

        with self.assertRaises(TelegramClientError) as context:
            TelegramClient(bot_token="test-token").send_message("Hi", chat_id="1")

        self.assertIn("chat not found", str(context.exception))

    @patch("src.messaging.telegram.client.requests.post")
    def test_timeout_raises(self, mock_post: MagicMock) -> None:
        """Test a request timeout is wrapped in TelegramClientError."""
        mock_post.side_effect = requests.exceptions.Timeout()

        with self.assertRaises(TelegramClientError) as context:
            TelegramClient(bot_token="test-token", request_timeout=7).send_message(
                "Hi", chat_id="1"
            )

        self.assertIn("7s", str(context.exception))

    @patch("src.messaging.telegram.client.requests.post")
    def test_http_error_raises(self, mock_post: MagicMock) -> None:
        """Test an HTTP error status is wrapped in TelegramClientError."""
        response = MagicMock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("502")
        mock_post.return_value = response

        with self.assertRaises(TelegramClientError):
            TelegramClient(bot_token="test-token").send_message("Hi", chat_id="1")


class TestTelegramClientCallbacks(unittest.TestCase):
    """Tests for answer_callback_query and edit_message_text."""

    @patch("src.messaging.telegram.client.requests.post")
    def test_answer_callback_query(self, mock_post: MagicMock) -> None:
        """Test answering a callback query with alert text."""
        mock_post.return_value = _ok_response(True)

        TelegramClient(bot_token="test-token").answer_callback_query(
            "cb-1", text="Nope", show_alert=True
        )

        self.assertTrue(mock_post.call_args.args[0].endswith("/answerCallbackQuery"))
        self.assertEqual(
            mock_post.call_args.kwargs["json"],
            {"callback_query_id": "cb-1", "show_alert": True, "text": "Nope"},
        )

    @patch("src.messaging.telegram.client.requests.post")
    def test_answer_without_text_omits_it(self, mock_post: MagicMock) -> None:
        """Test the text key is left out when no text is given."""
        mock_post.return_value = _ok_response(True)

        TelegramClient(bot_token="test-token").answer_callback_query("cb-1")

        self.assertNotIn("text", mock_post.call_args.kwargs["json"])

    @patch("src.messaging.telegram.client.requests.post")
    def test_edit_message_text(self, mock_post: MagicMock) -> None:
        """Test editing a message without a keyboard."""
        mock_post.return_value = _ok_response({"message_id": 9, "chat": {"id": 1}})

        TelegramClient(bot_token="test-token").edit_message_text("New", "1", 9)

        self.assertTrue(mock_post.call_args.args[0].endswith("/editMessageText"))
        payload = mock_post.call_args.kwargs["json"]
        self.assertEqual(payload["message_id"], 9)
        self.assertEqual(payload["text"], "New")
        self.assertNotIn("reply_markup", payload)


class TestTelegramClientGetUpdates(unittest.TestCase):
    """Tests for TelegramClient.get_updates method."""

    @patch("src.messaging.telegram.client.requests.get")
    def test_get_updates_parses_callback_queries(self, mock_get: MagicMock) -> None:
        """Test button presses are parsed into updates."""
        mock_get.return_value = _ok_response(
            [
                {
                    "update_id": 123,
                    "callback_query": {
                        "id": "cb-1",
                        "from": {"id": 67890, "is_bot": False, "first_name": "Test"},
                        "message": {
                            "message_id": 42,
                            "date": 1234567890,
                            "chat": {"id": 67890, "type": "private"},
                            "text": "Drink water",
                        },
                        "data": "reminder:done:abc",
                    },
                }
            ]
        )

        client = TelegramClient(bot_token="test-token")
        updates = client.get_updates(offset=100)

        self.assertEqual(len(updates), 1)
        self.assertEqual(updates[0].update_id, 123)
        callback_query = updates[0].callback_query
        assert callback_query is not None
        self.assertEqual(callback_query.from_user.id, 67890)
        self.assertEqual(callback_query.data, "reminder:done:abc")

        call_kwargs = mock_get.call_args.kwargs
        self.assertEqual(call_kwargs["params"]["offset"], 100)
        self.assertEqual(call_kwargs["params"]["timeout"], DEFAULT_POLL_TIMEOUT)
        self.assertEqual(call_kwargs["params"]["allowed_updates"], '["callback_query"]')
        self.assertEqual(call_kwargs["timeout"], DEFAULT_POLL_TIMEOUT + POLL_REQUEST_GRACE)

    @patch("src.messaging.telegram.client.requests.get")
    def test_get_updates_empty_without_offset(self, mock_get: MagicMock) -> None:
        """Test no offset is sent on the first poll and an empty batch is returned."""
        mock_get.return_value = _ok_response([])

        updates = TelegramClient(bot_token="test-token").get_updates()

        self.assertEqual(updates, [])
        self.assertNotIn("offset", mock_get.call_args.kwargs["params"])

    @patch("src.messaging.telegram.client.requests.get")
    def test_get_updates_custom_timeout(self, mock_get: MagicMock) -> None:
        """Test an explicit timeout overrides the configured poll timeout."""
        mock_get.return_value = _ok_response([])

        client = TelegramClient(bot_token="test-token", poll_timeout=50)
        client.get_updates(timeout=5)

        call_kwargs = mock_get.call_args.kwargs
        self.assertEqual(call_kwargs["params"]["timeout"], 5)
        self.assertEqual(call_kwargs["timeout"], 5 + POLL_REQUEST_GRACE)

    @patch("src.messaging.telegram.client.requests.get")
    def test_get_updates_api_error_raises(self, mock_get: MagicMock) -> None:
        """Test a not-ok response raises TelegramClientError."""
        response = MagicMock()
        response.json.return_value = {"ok": False, "description": "Conflict"}
        mock_get.return_value = response

        with self.assertRaises(TelegramClientError) as context:
            TelegramClient(bot_token="test-token").get_updates()

        self.assertIn("Conflict", str(context.exception))

    @patch("src.messaging.telegram.client.requests.get")
    def test_get_updates_timeout_raises(self, mock_get: MagicMock) -> None:
        """Test a request timeout is wrapped in TelegramClientError."""
        mock_get.side_effect = requests.exceptions.Timeout()

        with self.assertRaises(TelegramClientError):
            TelegramClient(bot_token="test-token").get_updates(timeout=1)


if __name__ == "__main__":
    unittest.main()
