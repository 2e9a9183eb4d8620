from __future__ import annotations

import json
import zipfile
from datetime import datetime
from pathlib import Path

from cartify.config import settings
from cartify.db.sqlite import list_scopes


def make_backup() -> str:
    """
    Делает ZIP: база хранилища + папка с PDF-чеками (если есть) + manifest.
    Возвращает путь к zip.
    """
    db_path = Path(settings.storage_path)
    receipts_dir = Path(settings.export_dir)
    backups_dir = Path(settings.backup_dir)
    backups_dir.mkdir(parents=True, exist_ok=True)

    ts = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    zip_path = backups_dir / f"backup_{ts}.zip"

    with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as z:
        if db_path.exists():
            z.write(db_path, arcname="db/cartify.db")
            z.writestr("manifest.json", json.dumps({"created_at": ts, "scopes": list_scopes(str(db_path))}, indent=2))

        if receipts_dir.exists():
            for p in receipts_dir.glob("*.pdf"):
                z.write(p, arcname=f"receipts/{p.name}")

    return str(zip_path)
