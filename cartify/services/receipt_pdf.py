from __future__ import annotations

import os
import re
from datetime import datetime
from typing import Optional

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from cartify.api.schemas import Order
from cartify.config import settings
from cartify.services.checkout import OrderSummary


def receipt_path(order_id: str) -> str:
    safe_id = re.sub(r"[^A-Za-z0-9_-]", "_", str(order_id))
    return os.path.join(settings.export_dir, f"receipt_{safe_id}.pdf")


def generate_receipt_pdf(order: Order, buyer_name: str = "", summary: Optional[OrderSummary] = None) -> str:
    os.makedirs(settings.export_dir, exist_ok=True)
    path = receipt_path(order.id)

    c = canvas.Canvas(path, pagesize=A4)
    w, h = A4

    y = h - 50
    c.setFont("Helvetica-Bold", 14)
    c.drawString(40, y, f"CARTIFY RECEIPT #{order.id}")
    y -= 20

    c.setFont("Helvetica", 11)
    if buyer_name:
        c.drawString(40, y, f"Buyer: {buyer_name}")
        y -= 16
    c.drawString(40, y, f"Seller: {order.seller}")
    y -= 16
    c.drawString(40, y, f"Date: {order.created_at or datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    y -= 16
    c.drawString(40, y, f"Status: {order.status} | Payment: {order.payment_method or '-'}")
    y -= 24

    # header
    c.setFont("Helvetica-Bold", 10)
    c.drawString(40, y, "Item")
    c.drawString(310, y, "Qty")
    c.drawString(360, y, "Price")
    c.drawString(440, y, "Total")
    y -= 10
    c.line(40, y, 550, y)
    y -= 16

    c.setFont("Helvetica", 10)
    for it in order.items:
        c.drawString(40, y, it.name[:45])
        c.drawRightString(340, y, str(it.quantity))
        c.drawRightString(420, y, f"{it.price:,.2f}")
        c.drawRightString(550, y, f"{it.price * it.quantity:,.2f}")
        y -= 14
        if y < 120:
            c.showPage()
            y = h - 50
            c.setFont("Helvetica", 10)

    y -= 10
    c.line(40, y, 550, y)
    y -= 18

    if summary is not None:
        c.setFont("Helvetica", 10)
        for label, value in (("Subtotal", summary.subtotal), ("Shipping", summary.shipping), ("Tax", summary.tax)):
            c.drawRightString(550, y, f"{label}: {value:,.2f} {settings.currency}")
            y -= 14

    c.setFont("Helvetica-Bold", 12)
    c.drawRightString(550, y, f"TOTAL: {order.total_amount:,.2f} {settings.currency}")

    c.save()
    return path
