"""Tests for AI chat, photo description and image generation handlers."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from telegram.error import TelegramError

from schema import InputMode
from services.image_generation_service import ImageGenerationError
from services.input_mode_service import InputModeStore
from handlers.ai_handler import generate_and_send_image, handle_ai_query, handle_photo_message, image_command


def status_message():
    message = MagicMock()
    message.edit_text = AsyncMock()
    message.delete = AsyncMock()
    return message


@pytest.mark.asyncio
async def test_ai_query_edits_thinking_message(make_update, context):
    update = make_update(text="hi")
    thinking = status_message()
    update.message.reply_text.return_value = thinking
    with patch("handlers.ai_handler.get_ai_chat_reply", return_value="Hello Test!") as chat:
        await handle_ai_query(update, context, "hi", "http://ai")
    chat.assert_called_once_with("hi", "Test", "http://ai")
    thinking.edit_text.assert_awaited_once_with("Hello Test!")


@pytest.mark.asyncio
async def test_ai_query_failure(make_update, context):
    update = make_update(text="hi")
    thinking = status_message()
    update.message.reply_text.return_value = thinking
    with patch("handlers.ai_handler.get_ai_chat_reply", return_value=None):
        await handle_ai_query(update, context, "hi", "http://ai")
    assert "couldn't get a response" in thinking.edit_text.call_args.args[0]


@pytest.mark.asyncio
async def test_photo_is_described(make_update, context):
    update = make_update()
    update.message.photo = [MagicMock(file_id="small"), MagicMock(file_id="large")]
    update.message.caption = "lunch"
    status = status_message()
    update.message.reply_text.return_value = status
    photo_file = MagicMock()
    photo_file.download_as_bytearray = AsyncMock(return_value=bytearray(b"jpeg"))
    context.bot.get_file.return_value = photo_file
    with patch("handlers.ai_handler.describe_image", return_value="A sandwich.") as describe:
        await handle_photo_message(update, context, "http://ai")
    context.bot.get_file.assert_awaited_once_with("large")
    describe.assert_called_once_with(b"jpeg", "lunch", "http://ai")
    assert "A sandwich." in status.edit_text.call_args.args[0]


@pytest.mark.asyncio
async def test_photo_download_failure(make_update, context):
    update = make_update()
    update.message.photo = [MagicMock(file_id="large")]
    status = status_message()
    update.message.reply_text.return_value = status
    context.bot.get_file.side_effect = TelegramError("gone")
    with patch("handlers.ai_handler.describe_image") as describe:
        await handle_photo_message(update, context, "http://ai")
    describe.assert_not_called()
    assert "couldn't download" in status.edit_text.call_args.args[0]


@pytest.mark.asyncio
async def test_generated_image_is_sent(make_update, context):
    update = make_update(text="a red fox")
    status = status_message()
    update.message.reply_text.return_value = status
    with patch("handlers.ai_handler.generate_image", return_value=b"png") as generate:
        await generate_and_send_image(update, context, "a red fox", "secret")
    generate.assert_called_once_with("a red fox", "secret")
    assert context.bot.send_photo.call_args.kwargs["photo"] == b"png"
    status.delete.assert_awaited_once()


@pytest.mark.asyncio
async def test_generation_timeout_message(make_update, context):
    update = make_update(text="a red fox")
    status = status_message()
    update.message.reply_text.return_value = status
    with patch("handlers.ai_handler.generate_image", side_effect=ImageGenerationError("slow", timed_out=True)):
        await generate_and_send_image(update, context, "a red fox", "secret")
    context.bot.send_photo.assert_not_awaited()
    assert "took too long" in status.edit_text.call_args.args[0]


@pytest.mark.asyncio
async def test_generation_error_message(make_update, context):
    update = make_update(text="a red fox")
    status = status_message()
    update.message.reply_text.return_value = status
    with patch("handlers.ai_handler.generate_image", side_effect=ImageGenerationError("Invalid prompt")):
        await generate_and_send_image(update, context, "a red fox", "secret")
    assert "Invalid prompt" in status.edit_text.call_args.args[0]


@pytest.mark.asyncio
async def test_image_command_with_prompt_generates(make_update, context, fake_convex):
    context.args = ["a", "red", "fox"]
    update = make_update(text="/image a red fox")
    with patch("handlers.ai_handler.generate_and_send_image", new=AsyncMock()) as generate:
        await image_command(update, context, InputModeStore(fake_convex), "secret")
    generate.assert_awaited_once_with(update, context, "a red fox", "secret")


@pytest.mark.asyncio
async def test_bare_image_command_waits_for_prompt(make_update, context, fake_convex, sample_user_id):
    mode_store = InputModeStore(fake_convex)
    update = make_update(text="/image")
    await image_command(update, context, mode_store, "secret")
    assert mode_store.get_mode(sample_user_id).mode is InputMode.IMAGE


@pytest.mark.asyncio
async def test_image_command_without_key(make_update, context, fake_convex, sample_user_id):
    mode_store = InputModeStore(fake_convex)
    update = make_update(text="/image")
    await image_command(update, context, mode_store, None)
    assert mode_store.get_mode(sample_user_id) is None
    assert "not available" in update.message.reply_text.call_args.args[0]
