import logging
from html import escape

from aiogram import Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import FSInputFile, Message, ReplyKeyboardRemove

from cartify.api.exceptions import AuthenticationRequired, CartifyError
from cartify.bot.common import (
    MAX_LIST,
    command_args,
    get_app,
    reply_error,
    require_login,
)
from cartify.bot.keyboards import main_kb, payment_kb, seller_kb
from cartify.bot.states import CheckoutForm, LoginForm, drop_app_state
from cartify.constants import CANCELLABLE_STATUSES, PRODUCT_CATEGORIES, ROLE_SELLER
from cartify.services.cart import CartItem
from cartify.services.checkout import place_order, summarize, sync_add, sync_quantity, sync_remove
from cartify.services.receipt_pdf import generate_receipt_pdf
from cartify.utils.formatters import cart_text, money, order_text, product_line
from cartify.utils.validators import parse_quantity, require_choice, require_payment_method

logger = logging.getLogger(__name__)

router = Router()


def _home_kb(app):
    return seller_kb() if app.session.has_role(ROLE_SELLER) else main_kb()


@router.message(Command("start"))
async def cmd_start(message: Message):
    app = get_app(message)
    restored = await app.restore()
    if restored:
        user = app.session.user
        await message.answer(f"✅ Welcome back, <b>{escape(user.name or user.email)}</b>!", reply_markup=_home_kb(app))
        return
    await message.answer(
        "🛒 Welcome to Cartify!\nLog in with /login or create an account with /signup.",
        reply_markup=main_kb(),
    )


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext):
    await state.clear()
    await message.answer("❎ Cancelled.", reply_markup=ReplyKeyboardRemove())


@router.message(Command("help"))
async def cmd_help(message: Message):
    text = (
        "<b>Cartify — commands</b>\n\n"
        "<b>Account</b>\n"
        "/signup — create an account\n"
        "/login — log in\n"
        "/logout — log out\n"
        "/me — my profile\n"
        "/password OLD NEW — change password\n"
        "/notifications email|push|sms on|off\n"
        "/theme light|dark — display theme\n\n"
        "<b>Shopping</b>\n"
        "/products [search] — browse products\n"
        "/category NAME — products in a category\n"
        "/product ID — product details\n"
        "/cart_add ID [QTY] — add to cart\n"
        "/cart — show cart\n"
        "/cart_qty ID QTY — set quantity (0 removes)\n"
        "/cart_remove ID — remove item\n"
        "/cart_clear — empty the cart\n"
        "/checkout — place an order\n"
        "/orders — my orders\n"
        "/order_cancel ID — cancel an order\n\n"
        "<b>Messages</b>\n"
        "/messages [ID] — conversations, or one conversation\n"
        "/chat SELLER_ID TEXT — start a conversation\n"
        "/send ID TEXT — reply in a conversation\n\n"
        "<b>Sellers</b>\n"
        "/my_products — my listings\n"
        "/product_add — list a product\n"
        "/product_status ID STATUS — change listing status\n"
        "/sales — orders with commission\n"
        "/order_status ID STATUS — update an order\n"
        "/wallet — balance\n"
        "/payout AMOUNT — request a payout\n"
        "/payouts — payout history\n"
        "/verify — verification status and steps\n\n"
        "<b>Admins</b>\n"
        "/users [role] — list users\n"
        "/user_status ID active|inactive\n"
        "/verifications — pending seller verifications\n"
        "/approve ID — approve a verification\n"
        "/earnings — platform earnings\n"
        "/backup — local storage backup\n\n"
        "<b>Help</b>\n"
        "/faq — frequently asked questions\n"
        "/support SUBJECT | MESSAGE — contact support\n\n"
        "/ping /health /cancel"
    )
    await message.answer(text)


@router.message(Command("ping"))
async def cmd_ping(message: Message):
    await message.answer("pong ✅")


@router.message(Command("health"))
async def cmd_health(message: Message):
    ok = await get_app(message).api.health()
    await message.answer("✅ Cartify API is up" if ok else "⚠️ Cartify API is not responding")


# ---------------- account ----------------

@router.message(Command("login"))
async def cmd_login(message: Message, state: FSMContext):
    await state.clear()
    await state.set_state(LoginForm.waiting_email)
    await message.answer("📧 Enter your email.\nCancel: /cancel", reply_markup=ReplyKeyboardRemove())


@router.message(LoginForm.waiting_email)
async def login_email(message: Message, state: FSMContext):
    email = (message.text or "").strip()
    if not email or email.startswith("/"):
        await message.answer("Enter your email as text. Cancel: /cancel")
        return
    await state.update_data(email=email)
    await state.set_state(LoginForm.waiting_password)
    await message.answer("🔑 Enter your password.")


@router.message(LoginForm.waiting_password)
async def login_password(message: Message, state: FSMContext):
    password = message.text or ""
    try:
        await message.delete()
    except TelegramBadRequest:
        pass

    data = await state.get_data()
    await state.clear()
    app = get_app(message)
    try:
        user = await app.login(data.get("email", ""), password)
    except (CartifyError, ValueError) as e:
        await reply_error(message, e)
        return
    await message.answer(
        f"✅ Logged in as <b>{escape(user.name or user.email)}</b> ({user.role})",
        reply_markup=_home_kb(app),
    )


@router.message(Command("logout"))
async def cmd_logout(message: Message, state: FSMContext):
    await state.clear()
    await get_app(message).logout()
    drop_app_state(int(message.from_user.id))
    await message.answer("👋 Logged out. Your cart was cleared.", reply_markup=ReplyKeyboardRemove())


@router.message(Command("me"))
async def cmd_me(message: Message):
    if not await require_login(message):
        return
    app = get_app(message)
    try:
        app.session.update_user(await app.user.get_profile())
    except AuthenticationRequired as e:
        await reply_error(message, e)
        return
    except CartifyError as e:
        logger.warning("Profile refresh failed for %s: %s", app.scope, e)

    user = app.session.user
    await message.answer(
        f"<b>{escape(user.name or '-')}</b>\n"
        f"Email: {escape(user.email)}\n"
        f"Role: {user.role}\n"
        f"Theme: {app.session.theme}"
    )


@router.message(Command("theme"))
async def cmd_theme(message: Message):
    args = command_args(message)
    session = get_app(message).session
    if not args:
        await message.answer(f"Theme: {session.theme}. Change: /theme light|dark")
        return
    try:
        session.theme = args[0]
    except ValueError as e:
        await reply_error(message, e)
        return
    await message.answer(f"✅ Theme: {session.theme}")


# ---------------- products ----------------

async def _send_products(message: Message, rows) -> None:
    if not rows:
        await message.answer("No products found.")
        return
    lines = ["<b>Products:</b>"]
    for p in rows[:MAX_LIST]:
        lines.append(product_line(p))
    if len(rows) > MAX_LIST:
        lines.append(f"… and {len(rows) - MAX_LIST} more. Narrow it down: /products QUERY")
    lines.append("\nAdd: /cart_add ID [QTY]")
    await message.answer("\n".join(lines))


@router.message(Command("products"))
async def cmd_products(message: Message):
    if not await require_login(message):
        return
    app = get_app(message)
    query = " ".join(command_args(message)).strip()
    try:
        rows = await (app.buyer.search_products(query) if query else app.buyer.get_products())
    except CartifyError as e:
        await reply_error(message, e)
        return
    await _send_products(message, rows)


@router.message(Command("category"))
async def cmd_category(message: Message):
    if not await require_login(message):
        return
    args = command_args(message)
    if len(args) != 1:
        await message.answer(f"Format: /category NAME\nCategories: {', '.join(PRODUCT_CATEGORIES)}")
        return
    try:
        category = require_choice(args[0], PRODUCT_CATEGORIES, "category")
        rows = await get_app(message).buyer.get_products(category=category)
    except (CartifyError, ValueError) as e:
        await reply_error(message, e)
        return
    await _send_products(message, rows)


@router.message(Command("product"))
async def cmd_product(message: Message):
    if not await require_login(message):
        return
    args = command_args(message)
    if len(args) != 1:
        await message.answer("Format: /product ID")
        return
    try:
        p = await get_app(message).buyer.get_product(args[0])
    except CartifyError as e:
        await reply_error(message, e)
        return
    await message.answer(
        f"<b>{escape(p.name)}</b>\n"
        f"{money(p.price)}\n"
        f"Seller: {escape(p.seller)}\n"
        f"Category: {escape(p.category)} | In stock: {p.stock}\n\n"
        f"{escape(p.description)}\n\n"
        f"/cart_add {escape(p.id)}"
    )


# ---------------- cart ----------------

@router.message(Command("cart_add"))
async def cmd_cart_add(message: Message):
    if not await require_login(message, "buyer"):
        return
    args = command_args(message)
    if len(args) not in (1, 2):
        await message.answer("Format: /cart_add ID [QTY]")
        return

    app = get_app(message)
    try:
        qty = parse_quantity(args[1]) if len(args) == 2 else 1
        if qty < 1:
            raise ValueError("quantity must be at least 1")
        product = await app.buyer.get_product(args[0])
    except (CartifyError, ValueError) as e:
        await reply_error(message, e)
        return

    existing = app.cart.get(product.id)
    in_cart = existing.quantity if existing else 0
    if product.stock and in_cart + qty > product.stock:
        await message.answer(
            f"❌ Only {product.stock} left of {escape(product.name)} (in your cart: {in_cart})"
        )
        return

    item = app.cart.add_to_cart(product, qty)
    try:
        synced = await sync_add(app, CartItem.from_product(product, qty))
    except AuthenticationRequired as e:
        await reply_error(message, e)
        return

    note = "" if synced else "\n(saved locally)"
    await message.answer(
        f"✅ Added: {escape(product.name)} × {qty}. In cart: {item.quantity}\n"
        f"Cart: {app.cart.get_cart_items_count()} items, {money(app.cart.get_cart_total())}{note}"
    )


@router.message(Command("cart"))
async def cmd_cart(message: Message):
    cart = get_app(message).cart
    await message.answer(cart_text(cart, summarize(cart)))


@router.message(Command("cart_qty"))
async def cmd_cart_qty(message: Message):
    args = command_args(message)
    if len(args) != 2:
        await message.answer("Format: /cart_qty ID QTY")
        return
    app = get_app(message)
    item_id = args[0]
    if item_id not in app.cart:
        await message.answer("Not in cart.")
        return
    try:
        qty = parse_quantity(args[1])
        app.cart.update_quantity(item_id, qty)
        await sync_quantity(app, item_id, qty)
    except (CartifyError, ValueError) as e:
        await reply_error(message, e)
        return
    await message.answer(cart_text(app.cart, summarize(app.cart)))


@router.message(Command("cart_remove"))
async def cmd_cart_remove(message: Message):
    args = command_args(message)
    if len(args) != 1:
        await message.answer("Format: /cart_remove ID")
        return
    app = get_app(message)
    if args[0] not in app.cart:
        await message.answer("Not in cart.")
        return
    app.cart.remove_from_cart(args[0])
    try:
        await sync_remove(app, args[0])
    except AuthenticationRequired as e:
        await reply_error(message, e)
        return
    await message.answer(f"✅ Removed {escape(args[0])}")


@router.message(Command("cart_clear"))
async def cmd_cart_clear(message: Message):
    app = get_app(message)
    app.cart.clear_cart()
    if app.session.is_authenticated:
        try:
            await app.buyer.clear_cart()
        except CartifyError as e:
            logger.warning("Server cart clear failed for %s: %s", app.scope, e)
    await message.answer("🧺 Cart cleared.")


# ---------------- checkout ----------------

@router.message(Command("checkout"))
async def cmd_checkout(message: Message, state: FSMContext):
    if not await require_login(message, "buyer"):
        return
    app = get_app(message)
    if not len(app.cart):
        await message.answer("🧺 Your cart is empty. Browse: /products")
        return

    await state.clear()
    await state.set_state(CheckoutForm.waiting_address)
    await message.answer(
        cart_text(app.cart, summarize(app.cart)) + "\n\n📦 Enter the shipping address.\nCancel: /cancel",
        reply_markup=ReplyKeyboardRemove(),
    )


@router.message(CheckoutForm.waiting_address)
async def checkout_address(message: Message, state: FSMContext):
    address = (message.text or "").strip()
    if not address or address.startswith("/"):
        await message.answer("Enter the address as text. Cancel: /cancel")
        return
    await state.update_data(address=address)
    await state.set_state(CheckoutForm.waiting_payment)
    await message.answer("💳 Choose a payment method.", reply_markup=payment_kb())


@router.message(CheckoutForm.waiting_payment)
async def checkout_payment(message: Message, state: FSMContext):
    app = get_app(message)
    data = await state.get_data()
    summary = summarize(app.cart)
    try:
        method = require_payment_method(message.text or "")
    except ValueError as e:
        # неверный способ оплаты, остаёмся в этом шаге
        await reply_error(message, e)
        return

    await state.clear()
    try:
        order = await place_order(app, data.get("address"), method)
    except (CartifyError, ValueError) as e:
        await reply_error(message, e)
        return

    await message.answer(
        f"✅ Order placed!\n{order_text(order)}",
        reply_markup=main_kb(),
    )
    try:
        pdf_path = generate_receipt_pdf(order, app.session.user.name, summary)
        await message.answer_document(FSInputFile(pdf_path))
    except Exception as e:
        logger.exception("Receipt PDF failed for order %s", order.id)
        await message.answer(f"⚠️ Order placed, but the receipt PDF failed: {escape(str(e))}")


@router.message(Command("orders"))
async def cmd_orders(message: Message):
    if not await require_login(message, "buyer"):
        return
    try:
        orders = await get_app(message).buyer.get_orders()
    except CartifyError as e:
        await reply_error(message, e)
        return
    if not orders:
        await message.answer("No orders yet.")
        return
    await message.answer("\n\n".join(order_text(o) for o in orders[:MAX_LIST]))


@router.message(Command("order_cancel"))
async def cmd_order_cancel(message: Message):
    if not await require_login(message, "buyer"):
        return
    args = command_args(message)
    if len(args) != 1:
        await message.answer("Format: /order_cancel ID")
        return
    app = get_app(message)
    try:
        order = await app.buyer.get_order(args[0])
        if order.status not in CANCELLABLE_STATUSES:
            await message.answer(f"❌ Order is already {order.status} and can't be cancelled.")
            return
        order = await app.buyer.cancel_order(args[0])
    except CartifyError as e:
        await reply_error(message, e)
        return
    await message.answer(f"✅ Cancelled.\n{order_text(order)}")
