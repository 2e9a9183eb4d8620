"""Signup, account settings, buyer/seller chat and help."""

import logging
from html import escape

from aiogram import Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, ReplyKeyboardRemove

from cartify.api.exceptions import CartifyError
from cartify.api.schemas import unwrap
from cartify.bot.common import (
    MAX_LIST,
    command_args,
    command_tail,
    get_app,
    reply_error,
    require_login,
    rows_of,
    step_text,
)
from cartify.bot.keyboards import choices_kb, main_kb, role_kb, seller_kb
from cartify.bot.states import SignupForm
from cartify.constants import BUSINESS_TYPES, NOTIFICATION_CHANNELS, ROLE_BUYER, ROLE_SELLER
from cartify.services.app_state import signup_data
from cartify.utils.formatters import conversation_line, message_line
from cartify.utils.validators import (
    require_choice,
    require_email,
    require_password,
    require_passwords_match,
)

logger = logging.getLogger(__name__)

router = Router()

DEFAULT_NOTIFICATIONS = {"email": True, "push": True, "sms": False}


async def _hide(message: Message) -> None:
    try:
        await message.delete()
    except TelegramBadRequest:
        pass


# ---------------- signup ----------------

@router.message(Command("signup"))
async def cmd_signup(message: Message, state: FSMContext):
    if get_app(message).session.is_authenticated:
        await message.answer("You are already logged in. /logout first.")
        return
    await state.clear()
    await state.set_state(SignupForm.waiting_role)
    await message.answer("Creating an account.\n\n1/7) Buyer or seller?\nCancel: /cancel", reply_markup=role_kb())


@router.message(SignupForm.waiting_role)
async def signup_role(message: Message, state: FSMContext):
    raw = await step_text(message, state, "Choose buyer or seller.")
    if raw is None:
        return
    try:
        role = require_choice(raw, (ROLE_BUYER, ROLE_SELLER), "role")
    except ValueError as e:
        await reply_error(message, e)
        return
    await state.update_data(role=role)
    await state.set_state(SignupForm.waiting_name)
    label = "business name" if role == ROLE_SELLER else "full name"
    await message.answer(f"2/7) Enter your {label}.", reply_markup=ReplyKeyboardRemove())


@router.message(SignupForm.waiting_name)
async def signup_name(message: Message, state: FSMContext):
    name = await step_text(message, state, "Enter the name as text.")
    if name is None:
        return
    await state.update_data(name=name)
    await state.set_state(SignupForm.waiting_email)
    await message.answer("3/7) Enter your email.")


@router.message(SignupForm.waiting_email)
async def signup_email(message: Message, state: FSMContext):
    raw = await step_text(message, state, "Enter your email as text.")
    if raw is None:
        return
    try:
        email = require_email(raw)
    except ValueError as e:
        await reply_error(message, e)
        return
    await state.update_data(email=email)
    await state.set_state(SignupForm.waiting_password)
    await message.answer("4/7) Choose a password (at least 6 characters).")


@router.message(SignupForm.waiting_password)
async def signup_password(message: Message, state: FSMContext):
    password = message.text or ""
    await _hide(message)
    try:
        require_password(password)
    except ValueError as e:
        await reply_error(message, e)
        return
    await state.update_data(password=password)
    await state.set_state(SignupForm.waiting_confirm)
    await message.answer("5/7) Repeat the password.")


@router.message(SignupForm.waiting_confirm)
async def signup_confirm(message: Message, state: FSMContext):
    confirm = message.text or ""
    await _hide(message)
    data = await state.get_data()
    try:
        require_passwords_match(data.get("password", ""), confirm)
    except ValueError as e:
        # начинаем пароль заново
        await state.set_state(SignupForm.waiting_password)
        await reply_error(message, e)
        await message.answer("4/7) Choose a password (at least 6 characters).")
        return

    if data.get("role") == ROLE_SELLER:
        await state.set_state(SignupForm.waiting_business_type)
        await message.answer("6/7) Business type?", reply_markup=choices_kb(BUSINESS_TYPES))
    else:
        await state.set_state(SignupForm.waiting_phone)
        await message.answer("6/7) Phone number?")


@router.message(SignupForm.waiting_phone)
async def signup_phone(message: Message, state: FSMContext):
    phone = await step_text(message, state, "Enter the phone number as text.")
    if phone is None:
        return
    await state.update_data(phone=phone)
    await state.set_state(SignupForm.waiting_address)
    await message.answer("7/7) Delivery address?")


@router.message(SignupForm.waiting_address)
async def signup_address(message: Message, state: FSMContext):
    address = await step_text(message, state, "Enter the address as text.")
    if address is None:
        return
    await state.update_data(address=address)
    await _finish_signup(message, state)


@router.message(SignupForm.waiting_business_type)
async def signup_business_type(message: Message, state: FSMContext):
    raw = await step_text(message, state, "Choose a business type.")
    if raw is None:
        return
    try:
        business_type = require_choice(raw, BUSINESS_TYPES, "business type")
    except ValueError as e:
        await reply_error(message, e)
        return
    await state.update_data(business_type=business_type)
    await state.set_state(SignupForm.waiting_business_address)
    await message.answer("7/7) Business address?", reply_markup=ReplyKeyboardRemove())


@router.message(SignupForm.waiting_business_address)
async def signup_business_address(message: Message, state: FSMContext):
    address = await step_text(message, state, "Enter the address as text.")
    if address is None:
        return
    await state.update_data(business_address=address)
    await _finish_signup(message, state)


async def _finish_signup(message: Message, state: FSMContext) -> None:
    data = await state.get_data()
    await state.clear()
    body = signup_data(
        role=data.get("role", ROLE_BUYER),
        name=data.get("name", ""),
        email=data.get("email", ""),
        password=data.get("password", ""),
        phone=data.get("phone", ""),
        address=data.get("address", ""),
        business_type=data.get("business_type", ""),
        business_address=data.get("business_address", ""),
    )
    try:
        user = await get_app(message).register(body, body["password"])
    except (CartifyError, ValueError) as e:
        await reply_error(message, e)
        await message.answer("Start again: /signup")
        return
    kb = seller_kb() if user.role == ROLE_SELLER else main_kb()
    await message.answer(f"🎉 Welcome to Cartify, <b>{escape(user.name or user.email)}</b>!", reply_markup=kb)


# ---------------- settings ----------------

@router.message(Command("password"))
async def cmd_password(message: Message):
    args = command_args(message)
    await _hide(message)
    if not await require_login(message):
        return
    if len(args) != 2:
        await message.answer("Format: /password OLD NEW")
        return
    try:
        require_password(args[1])
        await get_app(message).user.update_password(args[0], args[1])
    except (CartifyError, ValueError) as e:
        await reply_error(message, e)
        return
    await message.answer("✅ Password changed.")


@router.message(Command("notifications"))
async def cmd_notifications(message: Message):
    if not await require_login(message):
        return
    app = get_app(message)
    current = dict(DEFAULT_NOTIFICATIONS, **app.session.preferences.get("notifications", {}))
    args = command_args(message)
    if not args:
        lines = [f"{ch}: {'on' if current[ch] else 'off'}" for ch in NOTIFICATION_CHANNELS]
        await message.answer("<b>Notifications</b>\n" + "\n".join(lines) + "\n\nChange: /notifications email on")
        return
    try:
        if len(args) != 2:
            raise ValueError("Format: /notifications email|push|sms on|off")
        channel = require_choice(args[0], NOTIFICATION_CHANNELS, "channel")
        switch = require_choice(args[1], ("on", "off"), "value")
        current[channel] = switch == "on"
        await app.user.update_notifications(**current)
    except (CartifyError, ValueError) as e:
        await reply_error(message, e)
        return
    app.session.update_preferences(notifications=current)
    await message.answer(f"✅ {channel} notifications {switch}")


# ---------------- messages ----------------

@router.message(Command("messages"))
async def cmd_messages(message: Message):
    if not await require_login(message):
        return
    app = get_app(message)
    args = command_args(message)
    try:
        if not args:
            rows = rows_of(await app.messages.get_conversations(), "conversations")
        else:
            rows = rows_of(await app.messages.get_messages(args[0]), "messages")
    except CartifyError as e:
        await reply_error(message, e)
        return

    if not args:
        if not rows:
            await message.answer("No conversations yet.")
            return
        lines = ["<b>Conversations:</b>"]
        lines += [conversation_line(c) for c in rows[:MAX_LIST] if isinstance(c, dict)]
        lines.append("\nOpen: /messages ID")
        await message.answer("\n".join(lines))
        return

    try:
        await app.messages.mark_as_read(args[0])
    except CartifyError as e:
        logger.info("Mark as read failed for %s: %s", args[0], e)
    if not rows:
        await message.answer("No messages yet.")
        return
    lines = [message_line(m) for m in rows[-MAX_LIST:] if isinstance(m, dict)]
    lines.append(f"\nReply: /send {escape(args[0])} TEXT")
    await message.answer("\n".join(lines))


@router.message(Command("chat"))
async def cmd_chat(message: Message):
    if not await require_login(message, ROLE_BUYER):
        return
    parts = command_tail(message).split(maxsplit=1)
    if len(parts) != 2:
        await message.answer("Format: /chat SELLER_ID TEXT")
        return
    try:
        payload = await get_app(message).messages.create_conversation(parts[0], parts[1])
    except CartifyError as e:
        await reply_error(message, e)
        return
    conv = unwrap(payload, "conversation")
    conv_id = (conv.get("_id") or conv.get("id")) if isinstance(conv, dict) else None
    hint = f"\nContinue: /send {escape(str(conv_id))} TEXT" if conv_id else ""
    await message.answer(f"✅ Message sent to the seller.{hint}")


@router.message(Command("send"))
async def cmd_send(message: Message):
    if not await require_login(message):
        return
    parts = command_tail(message).split(maxsplit=1)
    if len(parts) != 2:
        await message.answer("Format: /send CONVERSATION_ID TEXT")
        return
    try:
        await get_app(message).messages.send_message(parts[0], parts[1])
    except CartifyError as e:
        await reply_error(message, e)
        return
    await message.answer("✅ Sent.")


# ---------------- help ----------------

@router.message(Command("faq"))
async def cmd_faq(message: Message):
    try:
        rows = rows_of(await get_app(message).help.get_faqs(), "faqs")
    except CartifyError as e:
        await reply_error(message, e)
        return
    if not rows:
        await message.answer("No FAQs available.")
        return
    lines = []
    for f in rows[:MAX_LIST]:
        if isinstance(f, dict):
            lines.append(f"<b>{escape(str(f.get('question') or ''))}</b>\n{escape(str(f.get('answer') or ''))}")
    await message.answer("\n\n".join(lines))


@router.message(Command("support"))
async def cmd_support(message: Message):
    if not await require_login(message):
        return
    subject, sep, text = command_tail(message).partition("|")
    if not sep or not subject.strip() or not text.strip():
        await message.answer("Format: /support SUBJECT | MESSAGE")
        return
    app = get_app(message)
    user = app.session.user
    try:
        await app.help.contact_support(user.name or user.email, user.email, subject.strip(), text.strip())
    except CartifyError as e:
        await reply_error(message, e)
        return
    await message.answer("✅ Support request sent. We will reply by email.")
