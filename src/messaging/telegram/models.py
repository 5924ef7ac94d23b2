"""Pydantic models for the Telegram Bot API objects the engine uses."""

from pydantic import BaseModel, Field


class TelegramUser(BaseModel):
    """Telegram user information."""

    id: int
    is_bot: bool = False
    first_name: str
    username: str | None = None


class TelegramChat(BaseModel):
    """Telegram chat information."""

    id: int
    type: str


class TelegramMessageInfo(BaseModel):
    """Telegram message information from the API."""

    message_id: int
    date: int
    chat: TelegramChat
    text: str | None = None


class InlineKeyboardButton(BaseModel):
    """A single inline keyboard button carrying callback data."""

    text: str
    callback_data: str


class InlineKeyboardMarkup(BaseModel):
    """Inline keyboard attached to a message, as rows of buttons."""

    inline_keyboard: list[list[InlineKeyboardButton]]


class CallbackQuery(BaseModel):
    """Callback query sent when a user presses an inline keyboard button."""

    id: str
    from_user: TelegramUser = Field(alias="from")
    message: TelegramMessageInfo | None = None
    data: str | None = None

    model_config = {"populate_by_name": True}


class SendMessageResult(BaseModel):
    """Result of sending a message via Telegram."""

    message_id: int
    chat_id: int


class TelegramUpdate(BaseModel):
    """Telegram update from getUpdates API.

    Only button presses are requested, so other update kinds are ignored.
    """

    update_id: int
    callback_query: CallbackQuery | None = None
