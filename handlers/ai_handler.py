# handlers/ai_handler.py
import asyncio
import logging
from typing import Optional

from telegram import Update
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from schema import InputMode
from services.ai_assistant_service import describe_image, get_ai_chat_reply
from services.image_generation_service import ImageGenerationError, generate_image
from services.input_mode_service import InputModeStore
from utils.telegram_utils import home_keyboard, send_or_edit, start_input_mode, user_id_of

logger = logging.getLogger(__name__)

IMAGE_PROMPT = (
    "🎨 *Generate an Image*\n\n"
    "Describe the image you want, for example:\n"
    "• `a cozy cabin in snowy mountains at sunset`\n"
    "• `watercolor fox reading a book`\n\n"
    "_This request expires in 10 minutes._"
)
IMAGE_UNAVAILABLE_TEXT = "🎨 Image generation is not available right now."
CAPTION_MAX_LENGTH = 200


async def handle_ai_query(update: Update, context: ContextTypes.DEFAULT_TYPE, text: str, ai_service_url: str) -> None:
    """Answers free text that was not captured by an input mode."""
    user_id = user_id_of(update)
    logger.info(f"AI chat request from user {user_id}")
    thinking_message = await update.message.reply_text("🤖 AI is thinking...")

    reply = await asyncio.to_thread(get_ai_chat_reply, text, update.effective_user.first_name, ai_service_url)
    if reply is None:
        await thinking_message.edit_text("❌ Sorry, I couldn't get a response from the AI right now. Please try again later.")
        return
    await thinking_message.edit_text(reply)


async def handle_photo_message(update: Update, context: ContextTypes.DEFAULT_TYPE, ai_service_url: str) -> None:
    user_id = user_id_of(update)
    photo = update.message.photo[-1]
    status_message = await update.message.reply_text("🔍 Analyzing your image...")

    try:
        photo_file = await context.bot.get_file(photo.file_id)
        image_bytes = await photo_file.download_as_bytearray()
    except TelegramError as e:
        logger.error(f"Could not download photo from user {user_id}: {e}")
        await status_message.edit_text("❌ I couldn't download that image. Please try sending it again.")
        return

    description = await asyncio.to_thread(describe_image, bytes(image_bytes), update.message.caption, ai_service_url)
    if description is None:
        await status_message.edit_text("❌ Sorry, I couldn't analyze that image right now. Please try again later.")
        return
    await status_message.edit_text(f"🖼️ {description}")


async def generate_and_send_image(
    update: Update,
    context: ContextTypes.DEFAULT_TYPE,
    prompt: str,
    freepik_api_key: Optional[str],
) -> None:
    if not freepik_api_key:
        await send_or_edit(update, IMAGE_UNAVAILABLE_TEXT, home_keyboard())
        return

    user_id = user_id_of(update)
    status_message = await update.effective_message.reply_text("🎨 Generating your image... this can take a minute or two.")
    try:
        image_bytes = await asyncio.to_thread(generate_image, prompt, freepik_api_key)
    except ImageGenerationError as e:
        logger.error(f"Image generation failed for user {user_id}: {e}")
        if e.timed_out:
            await status_message.edit_text("⏱️ Image generation took too long. Please try a simpler prompt.")
        else:
            await status_message.edit_text(f"❌ Image generation failed: {e}")
        return

    try:
        await context.bot.send_photo(
            chat_id=update.effective_chat.id,
            photo=image_bytes,
            caption=f"🎨 {prompt[:CAPTION_MAX_LENGTH]}",
            reply_markup=home_keyboard(),
        )
    except TelegramError as e:
        logger.error(f"Could not send generated image to user {user_id}: {e}")
        await status_message.edit_text("❌ The image was generated but I couldn't send it. Please try again.")
        return
    await status_message.delete()


async def image_command(
    update: Update,
    context: ContextTypes.DEFAULT_TYPE,
    mode_store: InputModeStore,
    freepik_api_key: Optional[str],
) -> None:
    """/image <prompt> generates right away; bare /image waits for the prompt."""
    if not freepik_api_key:
        await update.message.reply_text(IMAGE_UNAVAILABLE_TEXT)
        return

    prompt = " ".join(context.args).strip() if context.args else ""
    if prompt:
        await generate_and_send_image(update, context, prompt, freepik_api_key)
        return
    await start_input_mode(update, mode_store, InputMode.IMAGE, IMAGE_PROMPT)
