from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlencode

from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import FileResponse, HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from cartify.api.exceptions import AuthenticationRequired, CartifyError, NotFound
from cartify.config import settings
from cartify.constants import BUSINESS_TYPES, CANCELLABLE_STATUSES, PAYMENT_METHODS, THEMES
from cartify.db.sqlite import init_db
from cartify.services.app_state import AppState, signup_data
from cartify.services.cart import CartItem
from cartify.services.checkout import place_order, summarize, sync_add, sync_quantity, sync_remove
from cartify.services.receipt_pdf import generate_receipt_pdf, receipt_path
from cartify.utils.formatters import money
from cartify.utils.validators import parse_quantity

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = BASE_DIR / "templates"
STATIC_DIR = BASE_DIR / "static"

app = FastAPI(title="Cartify Web")

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.filters["money"] = money

if STATIC_DIR.exists():
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

_STATE: Optional[AppState] = None


def get_state() -> AppState:
    global _STATE
    if _STATE is None:
        _STATE = AppState(scope="web")
    return _STATE


@app.on_event("startup")
def _startup() -> None:
    init_db()


def _redirect(url: str, msg: str = "") -> RedirectResponse:
    if msg:
        url = f"{url}?{urlencode({'msg': msg})}"
    return RedirectResponse(url=url, status_code=303)


def _render(request: Request, state: AppState, name: str, ctx: dict[str, Any], status_code: int = 200) -> HTMLResponse:
    base = {
        "request": request,
        "user": state.session.user,
        "theme": state.session.theme,
        "cart_count": state.cart.get_cart_items_count(),
        "message": request.query_params.get("msg", ""),
    }
    base.update(ctx)
    return templates.TemplateResponse(request, name, base, status_code=status_code)


def _require_buyer(state: AppState) -> None:
    if not state.session.is_authenticated:
        raise AuthenticationRequired("Please log in to continue.")
    if not state.session.is_buyer:
        raise AuthenticationRequired("Please log in with a buyer account.")


@app.exception_handler(AuthenticationRequired)
async def _auth_required(request: Request, exc: AuthenticationRequired):
    return _redirect(settings.login_path, exc.message)


@app.exception_handler(CartifyError)
async def _api_failed(request: Request, exc: CartifyError):
    logger.warning("Cartify API error on %s: %s", request.url.path, exc)
    state = request.app.dependency_overrides.get(get_state, get_state)()
    status = getattr(exc, "status_code", 502)
    return _render(request, state, "error.html", {"error": str(exc)}, status_code=status)


@app.get("/", response_class=HTMLResponse)
def index(request: Request, state: AppState = Depends(get_state)):
    return _render(request, state, "index.html", {"themes": THEMES})


# ---------------- account ----------------

@app.get("/login", response_class=HTMLResponse)
def login_get(request: Request, state: AppState = Depends(get_state)):
    return _render(request, state, "login.html", {})


@app.post("/login")
async def login_post(
    email: str = Form(...),
    password: str = Form(...),
    state: AppState = Depends(get_state),
):
    try:
        await state.login(email, password)
    except (CartifyError, ValueError) as e:
        return _redirect("/login", str(e))
    return _redirect("/products")


@app.get("/signup", response_class=HTMLResponse)
def signup_get(request: Request, state: AppState = Depends(get_state)):
    return _render(request, state, "signup.html", {"business_types": BUSINESS_TYPES})


@app.post("/signup")
async def signup_post(
    role: str = Form(...),
    name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    confirm_password: str = Form(...),
    phone: str = Form(""),
    address: str = Form(""),
    business_type: str = Form(""),
    business_address: str = Form(""),
    state: AppState = Depends(get_state),
):
    data = signup_data(role, name, email, password, phone, address, business_type, business_address)
    try:
        user = await state.register(data, confirm_password)
    except (CartifyError, ValueError) as e:
        return _redirect("/signup", str(e))
    if state.session.is_buyer:
        return _redirect("/products", f"Welcome, {user.name or user.email}")
    return _redirect("/", f"Welcome, {user.name or user.email}")


@app.post("/logout")
async def logout(state: AppState = Depends(get_state)):
    await state.logout()
    return _redirect("/", "Logged out")


@app.post("/settings/theme")
def settings_theme(theme: str = Form(...), state: AppState = Depends(get_state)):
    try:
        state.session.theme = theme
    except ValueError as e:
        return _redirect("/", str(e))
    return _redirect("/")


# ---------------- products ----------------

@app.get("/products", response_class=HTMLResponse)
async def products(request: Request, q: str = "", category: str = "", state: AppState = Depends(get_state)):
    _require_buyer(state)
    if q.strip():
        rows = await state.buyer.search_products(q.strip())
    else:
        rows = await state.buyer.get_products(category=category or None)
    return _render(request, state, "products.html", {"products": rows, "q": q, "category": category})


@app.get("/products/{product_id}", response_class=HTMLResponse)
async def product_detail(request: Request, product_id: str, state: AppState = Depends(get_state)):
    _require_buyer(state)
    product = await state.buyer.get_product(product_id)
    return _render(request, state, "product.html", {"product": product})


# ---------------- cart ----------------

@app.get("/cart", response_class=HTMLResponse)
def cart(request: Request, state: AppState = Depends(get_state)):
    return _render(
        request,
        state,
        "cart.html",
        {"items": state.cart.items, "summary": summarize(state.cart)},
    )


@app.post("/cart/add")
async def cart_add(
    product_id: str = Form(...),
    quantity: str = Form("1"),
    state: AppState = Depends(get_state),
):
    _require_buyer(state)
    try:
        qty = parse_quantity(quantity)
        if qty < 1:
            raise ValueError("quantity must be at least 1")
    except ValueError as e:
        return _redirect("/cart", str(e))

    product = await state.buyer.get_product(product_id)
    existing = state.cart.get(product.id)
    in_cart = existing.quantity if existing else 0
    if product.stock and in_cart + qty > product.stock:
        return _redirect("/cart", f"Only {product.stock} left of {product.name} (in your cart: {in_cart})")
    item = state.cart.add_to_cart(product, qty)
    await sync_add(state, CartItem.from_product(product, qty))
    return _redirect("/cart", f"Added {product.name} (in cart: {item.quantity})")


@app.post("/cart/update")
async def cart_update(
    product_id: str = Form(...),
    quantity: str = Form(...),
    state: AppState = Depends(get_state),
):
    try:
        qty = parse_quantity(quantity)
    except ValueError as e:
        return _redirect("/cart", str(e))
    if product_id not in state.cart:
        return _redirect("/cart", "Not in cart")
    state.cart.update_quantity(product_id, qty)
    await sync_quantity(state, product_id, qty)
    return _redirect("/cart")


@app.post("/cart/remove")
async def cart_remove(product_id: str = Form(...), state: AppState = Depends(get_state)):
    state.cart.remove_from_cart(product_id)
    await sync_remove(state, product_id)
    return _redirect("/cart", "Removed")


@app.post("/cart/clear")
async def cart_clear(state: AppState = Depends(get_state)):
    state.cart.clear_cart()
    if state.session.is_authenticated:
        try:
            await state.buyer.clear_cart()
        except AuthenticationRequired:
            raise
        except CartifyError as e:
            logger.warning("Server cart clear failed: %s", e)
    return _redirect("/cart", "Cart cleared")


# ---------------- checkout ----------------

@app.get("/checkout", response_class=HTMLResponse)
def checkout_get(request: Request, state: AppState = Depends(get_state)):
    _require_buyer(state)
    if not len(state.cart):
        return _redirect("/cart", "Your cart is empty")
    return _render(
        request,
        state,
        "checkout.html",
        {"items": state.cart.items, "summary": summarize(state.cart), "payment_methods": PAYMENT_METHODS},
    )


@app.post("/checkout")
async def checkout_post(
    address: str = Form(...),
    payment_method: str = Form(...),
    notes: str = Form(""),
    state: AppState = Depends(get_state),
):
    summary = summarize(state.cart)
    try:
        order = await place_order(state, address.strip(), payment_method, notes.strip() or None)
    except ValueError as e:
        return _redirect("/checkout", str(e))

    try:
        generate_receipt_pdf(order, state.session.user.name, summary)
    except Exception:
        logger.exception("Receipt PDF failed for order %s", order.id)
    return _redirect("/orders", f"Order {order.id} placed")


@app.get("/orders", response_class=HTMLResponse)
async def orders(request: Request, state: AppState = Depends(get_state)):
    _require_buyer(state)
    rows = await state.buyer.get_orders()
    return _render(
        request,
        state,
        "orders.html",
        {"orders": rows, "cancellable": CANCELLABLE_STATUSES},
    )


@app.post("/orders/{order_id}/cancel")
async def order_cancel(order_id: str, state: AppState = Depends(get_state)):
    _require_buyer(state)
    order = await state.buyer.get_order(order_id)
    if order.status not in CANCELLABLE_STATUSES:
        return _redirect("/orders", f"Order is already {order.status}")
    await state.buyer.cancel_order(order_id)
    return _redirect("/orders", "Order cancelled")


@app.get("/receipt/{order_id}", response_class=FileResponse)
def receipt(order_id: str, state: AppState = Depends(get_state)):
    _require_buyer(state)
    p = Path(receipt_path(order_id))
    if not p.exists():
        raise NotFound(f"No receipt for order {order_id}")
    return FileResponse(str(p), filename=p.name, media_type="application/pdf")
