"""Admin commands: users, seller verifications, earnings and backups."""

import logging
from html import escape

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import FSInputFile, Message

from cartify.api.exceptions import CartifyError
from cartify.api.schemas import unwrap
from cartify.bot.common import (
    MAX_LIST,
    amount_or_zero,
    command_args,
    get_app,
    reply_error,
    require_login,
    rows_of,
)
from cartify.constants import ROLE_ADMIN, USER_ROLES, USER_STATUSES
from cartify.services.backup import make_backup
from cartify.utils.formatters import money, user_line
from cartify.utils.validators import require_choice

logger = logging.getLogger(__name__)

router = Router()


@router.message(Command("users"))
async def cmd_users(message: Message):
    if not await require_login(message, ROLE_ADMIN):
        return
    args = command_args(message)
    try:
        role = require_choice(args[0], USER_ROLES, "role") if args else None
        rows = rows_of(await get_app(message).admin.get_users(role), "users")
    except (CartifyError, ValueError) as e:
        await reply_error(message, e)
        return
    if not rows:
        await message.answer("No users found.")
        return
    lines = [f"<b>Users ({len(rows)}):</b>"] + [user_line(u) for u in rows[:MAX_LIST] if isinstance(u, dict)]
    lines.append("\nBlock/unblock: /user_status ID active|inactive")
    await message.answer("\n".join(lines))


@router.message(Command("user_status"))
async def cmd_user_status(message: Message):
    if not await require_login(message, ROLE_ADMIN):
        return
    args = command_args(message)
    if len(args) != 2:
        await message.answer(f"Format: /user_status ID {'|'.join(USER_STATUSES)}")
        return
    try:
        status = require_choice(args[1], USER_STATUSES, "status")
        await get_app(message).admin.update_user_status(args[0], status)
    except (CartifyError, ValueError) as e:
        await reply_error(message, e)
        return
    logger.info("User %s set to %s by %s", args[0], status, message.from_user.id)
    await message.answer(f"✅ User {escape(args[0])} is now {status}")


@router.message(Command("verifications"))
async def cmd_verifications(message: Message):
    if not await require_login(message, ROLE_ADMIN):
        return
    try:
        rows = rows_of(await get_app(message).admin.get_pending_verifications(), "verifications")
    except CartifyError as e:
        await reply_error(message, e)
        return
    if not rows:
        await message.answer("No pending verifications.")
        return
    lines = ["<b>Pending verifications:</b>"]
    for v in rows[:MAX_LIST]:
        if not isinstance(v, dict):
            continue
        seller = v.get("seller") if isinstance(v.get("seller"), dict) else v
        name = seller.get("businessName") or seller.get("name") or "-"
        lines.append(f"• <code>{escape(str(v.get('_id') or v.get('id') or '?'))}</code> {escape(str(name))}")
    lines.append("\nApprove: /approve ID")
    await message.answer("\n".join(lines))


@router.message(Command("approve"))
async def cmd_approve(message: Message):
    if not await require_login(message, ROLE_ADMIN):
        return
    args = command_args(message)
    if len(args) != 1:
        await message.answer("Format: /approve ID")
        return
    try:
        await get_app(message).admin.approve_verification(args[0])
    except CartifyError as e:
        await reply_error(message, e)
        return
    await message.answer(f"✅ Verification {escape(args[0])} approved.")


@router.message(Command("earnings"))
async def cmd_earnings(message: Message):
    if not await require_login(message, ROLE_ADMIN):
        return
    try:
        data = unwrap(await get_app(message).admin.get_total_earnings(), "earnings")
    except CartifyError as e:
        await reply_error(message, e)
        return
    total = data.get("totalEarnings", data.get("total")) if isinstance(data, dict) else data
    await message.answer(f"💰 Platform earnings: {money(amount_or_zero(total))}")


@router.message(Command("backup"))
async def cmd_backup(message: Message):
    if not await require_login(message, ROLE_ADMIN):
        return
    try:
        file_path = make_backup()
        await message.answer_document(FSInputFile(file_path))
    except Exception as e:
        logger.exception("Backup failed")
        await message.answer(f"❌ Backup failed: {escape(str(e))}")
