"""Seller commands: listings, sales, wallet, payouts and verification."""

import logging
import shlex
from decimal import Decimal
from html import escape

from aiogram import Router
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, ReplyKeyboardRemove

from cartify.api.exceptions import CartifyError
from cartify.api.schemas import unwrap
from cartify.bot.common import (
    MAX_LIST,
    amount_or_zero,
    command_args,
    command_tail,
    get_app,
    reply_error,
    require_login,
    rows_of,
    step_text,
)
from cartify.bot.keyboards import choices_kb, seller_kb
from cartify.bot.states import ProductForm
from cartify.constants import (
    ID_TYPES,
    ORDER_STATUSES,
    PRODUCT_CATEGORIES,
    PRODUCT_STATUSES,
    ROLE_SELLER,
    VERIFICATION_FEE,
)
from cartify.services.pricing import calc_commission, seller_net
from cartify.utils.formatters import money, payout_line, product_line
from cartify.utils.validators import parse_amount, parse_quantity, require_bvn, require_choice

logger = logging.getLogger(__name__)

router = Router()


def _parse_stock(text: str) -> int:
    stock = parse_quantity(text)
    if stock < 0:
        raise ValueError("stock must be 0 or more")
    return stock


async def _create_product(message: Message, name: str, price: Decimal, stock: int, category: str) -> None:
    data = {"name": name, "price": float(price), "stock": stock, "category": category, "description": ""}
    try:
        product = await get_app(message).seller.create_product(data)
    except CartifyError as e:
        await reply_error(message, e)
        return
    logger.info("Product %s listed by %s", product.id, message.from_user.id)
    await message.answer(f"✅ Product listed:\n{product_line(product)}", reply_markup=seller_kb())


# ---------------- listings ----------------

@router.message(Command("my_products"))
async def cmd_my_products(message: Message):
    if not await require_login(message, ROLE_SELLER):
        return
    try:
        rows = await get_app(message).seller.get_products()
    except CartifyError as e:
        await reply_error(message, e)
        return
    if not rows:
        await message.answer("No products yet. Add one: /product_add")
        return
    lines = ["<b>My products:</b>"] + [product_line(p) for p in rows[:MAX_LIST]]
    await message.answer("\n".join(lines))


@router.message(Command("product_add"))
async def cmd_product_add(message: Message, state: FSMContext):
    if not await require_login(message, ROLE_SELLER):
        return

    try:
        args = shlex.split(message.text or "")
    except ValueError:
        args = []
    if len(args) >= 5:
        _, name, price, stock, category = args[:5]
        try:
            parsed = (parse_amount(price, "price"), _parse_stock(stock), require_choice(category, PRODUCT_CATEGORIES, "category"))
        except ValueError as e:
            await reply_error(message, e)
            return
        await _create_product(message, name, *parsed)
        return

    await state.clear()
    await state.set_state(ProductForm.waiting_name)
    await message.answer(
        "Listing a new product.\n\n1/4) Product name?\n"
        'Quick form: /product_add "Name" PRICE STOCK CATEGORY\nCancel: /cancel',
        reply_markup=ReplyKeyboardRemove(),
    )


@router.message(ProductForm.waiting_name)
async def product_add_name(message: Message, state: FSMContext):
    name = await step_text(message, state, "Enter the product name as text.")
    if name is None:
        return
    await state.update_data(name=name)
    await state.set_state(ProductForm.waiting_price)
    await message.answer("2/4) Price? Example: 4500")


@router.message(ProductForm.waiting_price)
async def product_add_price(message: Message, state: FSMContext):
    raw = await step_text(message, state, "Enter the price as a number.")
    if raw is None:
        return
    try:
        price = parse_amount(raw, "price")
    except ValueError as e:
        await reply_error(message, e)
        return
    await state.update_data(price=str(price))
    await state.set_state(ProductForm.waiting_stock)
    await message.answer("3/4) How many in stock?")


@router.message(ProductForm.waiting_stock)
async def product_add_stock(message: Message, state: FSMContext):
    raw = await step_text(message, state, "Enter the stock as a whole number.")
    if raw is None:
        return
    try:
        stock = _parse_stock(raw)
    except ValueError as e:
        await reply_error(message, e)
        return
    await state.update_data(stock=stock)
    await state.set_state(ProductForm.waiting_category)
    await message.answer("4/4) Category?", reply_markup=choices_kb(PRODUCT_CATEGORIES))


@router.message(ProductForm.waiting_category)
async def product_add_category(message: Message, state: FSMContext):
    raw = await step_text(message, state, "Choose a category.")
    if raw is None:
        return
    try:
        category = require_choice(raw, PRODUCT_CATEGORIES, "category")
    except ValueError as e:
        await reply_error(message, e)
        return
    data = await state.get_data()
    await state.clear()
    await _create_product(message, data["name"], Decimal(data["price"]), int(data["stock"]), category)


@router.message(Command("product_status"))
async def cmd_product_status(message: Message):
    if not await require_login(message, ROLE_SELLER):
        return
    args = command_args(message)
    if len(args) != 2:
        await message.answer(f"Format: /product_status ID {'|'.join(PRODUCT_STATUSES)}")
        return
    try:
        status = require_choice(args[1], PRODUCT_STATUSES, "status")
        await get_app(message).seller.update_product_status(args[0], status)
    except (CartifyError, ValueError) as e:
        await reply_error(message, e)
        return
    await message.answer(f"✅ Product {escape(args[0])} is now {status}")


# ---------------- sales ----------------

@router.message(Command("sales"))
async def cmd_sales(message: Message):
    if not await require_login(message, ROLE_SELLER):
        return
    try:
        orders = await get_app(message).seller.get_orders()
    except CartifyError as e:
        await reply_error(message, e)
        return
    if not orders:
        await message.answer("No sales yet.")
        return
    lines = ["<b>Sales:</b>"]
    for o in orders[:MAX_LIST]:
        lines.append(
            f"• {escape(o.id)} [{escape(o.status)}] {money(o.total_amount)} "
            f"− fee {money(calc_commission(o.total_amount))} = {money(seller_net(o.total_amount))}"
        )
    lines.append("\nUpdate: /order_status ID STATUS")
    await message.answer("\n".join(lines))


@router.message(Command("order_status"))
async def cmd_order_status(message: Message):
    if not await require_login(message, ROLE_SELLER):
        return
    args = command_args(message)
    if len(args) != 2:
        await message.answer(f"Format: /order_status ID STATUS\nStatuses: {', '.join(ORDER_STATUSES)}")
        return
    try:
        status = require_choice(args[1], ORDER_STATUSES, "status")
        order = await get_app(message).seller.update_order_status(args[0], status)
    except (CartifyError, ValueError) as e:
        await reply_error(message, e)
        return
    await message.answer(f"✅ Order {escape(order.id)}: {escape(order.status)}")


# ---------------- wallet ----------------

@router.message(Command("wallet"))
async def cmd_wallet(message: Message):
    if not await require_login(message, ROLE_SELLER):
        return
    try:
        wallet = unwrap(await get_app(message).seller.get_wallet(), "wallet")
    except CartifyError as e:
        await reply_error(message, e)
        return
    if not isinstance(wallet, dict):
        await message.answer("Wallet is not available yet.")
        return
    await message.answer(
        "<b>Wallet</b>\n"
        f"Available: {money(amount_or_zero(wallet.get('balance')))}\n"
        f"Pending: {money(amount_or_zero(wallet.get('pendingBalance')))}\n"
        f"Total earned: {money(amount_or_zero(wallet.get('totalEarnings')))}\n"
        f"Withdrawn: {money(amount_or_zero(wallet.get('totalWithdrawn')))}"
    )


@router.message(Command("payout"))
async def cmd_payout(message: Message):
    if not await require_login(message, ROLE_SELLER):
        return
    args = command_args(message)
    if len(args) != 1:
        await message.answer("Format: /payout AMOUNT")
        return
    try:
        amount = parse_amount(args[0])
        await get_app(message).seller.request_payout(amount)
    except (CartifyError, ValueError) as e:
        await reply_error(message, e)
        return
    await message.answer(f"✅ Payout requested: {money(amount)}")


@router.message(Command("payouts"))
async def cmd_payouts(message: Message):
    if not await require_login(message, ROLE_SELLER):
        return
    try:
        rows = rows_of(await get_app(message).seller.get_payouts(), "payouts")
    except CartifyError as e:
        await reply_error(message, e)
        return
    if not rows:
        await message.answer("No payouts yet. Request one: /payout AMOUNT")
        return
    lines = ["<b>Payouts:</b>"] + [payout_line(p) for p in rows[:MAX_LIST] if isinstance(p, dict)]
    await message.answer("\n".join(lines))


# ---------------- verification ----------------

VERIFY_HELP = (
    "/verify bvn NUMBER\n"
    f"/verify id {'|'.join(ID_TYPES)} NUMBER\n"
    "/verify bank BANK NAME | ACCOUNT NUMBER | ACCOUNT NAME"
)


async def _verification_status(message: Message) -> None:
    try:
        status = unwrap(await get_app(message).seller.get_verification_status(), "verification")
    except CartifyError as e:
        await reply_error(message, e)
        return
    lines = ["<b>Verification</b>"]
    if isinstance(status, dict):
        if status.get("level"):
            lines.append(f"Level: {escape(str(status['level']))}")
        for step in status.get("steps") or []:
            if isinstance(step, dict):
                lines.append(f"• {escape(str(step.get('id') or '?'))}: {escape(str(step.get('status') or 'pending'))}")
    lines.append(f"Verification fee: {money(VERIFICATION_FEE)}")
    lines.append("\n" + VERIFY_HELP)
    await message.answer("\n".join(lines))


@router.message(Command("verify"))
async def cmd_verify(message: Message):
    if not await require_login(message, ROLE_SELLER):
        return
    args = command_args(message)
    if not args:
        await _verification_status(message)
        return

    seller = get_app(message).seller
    step = args[0].lower()
    try:
        if step == "bvn" and len(args) == 2:
            await seller.submit_bvn(require_bvn(args[1]))
        elif step == "id" and len(args) == 3:
            await seller.submit_id(require_choice(args[1], ID_TYPES, "ID type"), args[2])
        elif step == "bank":
            parts = [p.strip() for p in command_tail(message)[len(args[0]):].split("|")]
            if len(parts) != 3 or not all(parts):
                raise ValueError("Format: /verify bank BANK NAME | ACCOUNT NUMBER | ACCOUNT NAME")
            if not parts[1].isdigit():
                raise ValueError("Account number must contain digits only")
            await seller.submit_bank_details(*parts)
        else:
            await message.answer(VERIFY_HELP)
            return
    except (CartifyError, ValueError) as e:
        await reply_error(message, e)
        return
    await message.answer(f"✅ {escape(step.upper())} details submitted for review.")
