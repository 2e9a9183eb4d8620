import json
import os
import zipfile
from decimal import Decimal

from cartify.api.schemas import parse_order
from cartify.config import settings
from cartify.db.sqlite import Storage
from cartify.services.backup import make_backup
from cartify.services.checkout import OrderSummary
from cartify.services.receipt_pdf import generate_receipt_pdf, receipt_path

ORDER = parse_order(
    {
        "_id": "o/../42",
        "status": "pending",
        "totalAmount": 537.8,
        "paymentMethod": "card",
        "seller": {"businessName": "HomeCo"},
        "items": [{"product": "p1", "productName": "Kettle", "quantity": 2, "price": 17.5}],
    }
)


def test_receipt_path_is_sanitized():
    path = receipt_path("o/../42")
    assert os.path.dirname(path) == settings.export_dir
    assert os.path.basename(path) == "receipt_o____42.pdf"


def test_generate_receipt_pdf():
    summary = OrderSummary(Decimal("35.00"), Decimal("500.00"), Decimal("2.80"), Decimal("537.80"))
    path = generate_receipt_pdf(ORDER, "Ada", summary)

    assert path == receipt_path(ORDER.id)
    with open(path, "rb") as f:
        assert f.read(5) == b"%PDF-"


def test_make_backup_contains_db_manifest_and_receipts():
    Storage("tg:1").set("cart", [{"id": "p1", "quantity": 1}])
    generate_receipt_pdf(ORDER)

    zip_path = make_backup()

    with zipfile.ZipFile(zip_path) as z:
        names = z.namelist()
        manifest = json.loads(z.read("manifest.json"))
    assert "db/cartify.db" in names
    assert f"receipts/{os.path.basename(receipt_path(ORDER.id))}" in names
    assert "tg:1" in [s["scope"] for s in manifest["scopes"]]
