"""Helpers shared by the bot routers."""

from html import escape
from typing import Optional

from aiogram.fsm.context import FSMContext
from aiogram.types import Message, ReplyKeyboardRemove

from cartify.api.exceptions import AuthenticationRequired
from cartify.api.schemas import unwrap
from cartify.bot.states import get_app_state
from cartify.services.app_state import AppState
from cartify.utils.validators import parse_amount

MAX_LIST = 20


def get_app(message: Message) -> AppState:
    return get_app_state(int(message.from_user.id))


def command_args(message: Message) -> list[str]:
    return (message.text or "").split()[1:]


def command_tail(message: Message) -> str:
    """Everything after the command word, as typed."""
    parts = (message.text or "").split(maxsplit=1)
    return parts[1].strip() if len(parts) == 2 else ""


def amount_or_zero(value):
    try:
        return parse_amount(value)
    except ValueError:
        return 0


async def reply_error(message: Message, e: Exception) -> None:
    if isinstance(e, AuthenticationRequired):
        await message.answer("🔒 Session expired or not logged in. Use /login")
    else:
        await message.answer(f"❌ {escape(str(e))}")


async def require_login(message: Message, role: Optional[str] = None) -> bool:
    app = get_app(message)
    if not app.session.is_authenticated:
        await message.answer("🔒 Please log in first: /login")
        return False
    if role and not app.session.has_role(role):
        await message.answer(f"⛔ This command is for {role}s only.")
        return False
    return True


async def step_text(message: Message, state: FSMContext, hint: str) -> Optional[str]:
    """Text answer for an FSM step; None if the user cancelled or sent nothing usable."""
    raw = (message.text or "").strip()
    if raw == "/cancel":
        await state.clear()
        await message.answer("❎ Cancelled.", reply_markup=ReplyKeyboardRemove())
        return None
    if not raw or raw.startswith("/"):
        await message.answer(f"{hint}\nCancel: /cancel")
        return None
    return raw


def rows_of(payload, *keys: str) -> list:
    """List inside a ``{success, <key>: [...]}`` or ``{data: [...]}`` envelope."""
    rows = unwrap(payload, *keys)
    return rows if isinstance(rows, list) else []
