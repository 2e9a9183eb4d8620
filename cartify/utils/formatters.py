from decimal import Decimal
from html import escape

from cartify.config import settings


def money(v) -> str:
    return f"{v:,.{settings.decimals}f} {settings.currency}"


def product_line(p) -> str:
    stock = f" | stock {p.stock}" if p.stock else ""
    return f"• <code>{escape(p.id)}</code> {escape(p.name)} — {money(p.price)} ({escape(p.seller)}){stock}"


def cart_text(cart, summary) -> str:
    if not len(cart):
        return "🧺 Your cart is empty. Browse: /products"

    lines = ["<b>🧺 Cart</b>"]
    for it in cart.items:
        lines.append(
            f"• <code>{escape(it.id)}</code> {escape(it.name)} × {it.quantity} — {money(it.line_total)}"
        )
    lines.append("")
    lines.append(f"Items: {cart.get_cart_items_count()}")
    lines.append(f"Subtotal: {money(summary.subtotal)}")
    lines.append(f"Shipping: {money(summary.shipping)}")
    lines.append(f"Tax: {money(summary.tax)}")
    lines.append(f"<b>Total: {money(summary.total)}</b>")
    return "\n".join(lines)


def order_text(order) -> str:
    lines = [f"<b>Order {escape(order.id)}</b> — {escape(order.status)}"]
    for it in order.items:
        lines.append(f"  • {escape(it.name)} × {it.quantity} — {money(it.price * it.quantity)}")
    lines.append(f"  Total: {money(order.total_amount)}")
    return "\n".join(lines)


def _ident(row: dict) -> str:
    return escape(str(row.get("_id") or row.get("id") or "?"))


def _party(value) -> str:
    if isinstance(value, dict):
        return value.get("businessName") or value.get("storeName") or value.get("name") or "-"
    return "-"


def conversation_line(conv: dict) -> str:
    last = conv.get("lastMessage")
    text = last.get("text") if isinstance(last, dict) else last
    unread = conv.get("unreadCount") or 0
    badge = f" 🔴{unread}" if unread else ""
    with_whom = _party(conv.get("seller")) if isinstance(conv.get("seller"), dict) else _party(conv.get("buyer"))
    return f"• <code>{_ident(conv)}</code> {escape(with_whom)}{badge}: {escape(str(text or 'No messages yet'))}"


def message_line(msg: dict) -> str:
    return f"<b>{escape(_party(msg.get('sender')))}</b>: {escape(str(msg.get('text') or ''))}"


def payout_line(payout: dict) -> str:
    created = str(payout.get("createdAt") or "")[:10]
    return (
        f"• {escape(created)} {money(Decimal(str(payout.get('amount') or 0)))} "
        f"[{escape(str(payout.get('status') or 'pending'))}]"
    )


def user_line(user: dict) -> str:
    active = user.get("isActive", user.get("status", "active") == "active")
    flag = "" if active else " ⛔"
    return (
        f"• <code>{_ident(user)}</code> {escape(_party(user))} "
        f"&lt;{escape(str(user.get('email') or '-'))}&gt; {escape(str(user.get('role') or '-'))}{flag}"
    )
