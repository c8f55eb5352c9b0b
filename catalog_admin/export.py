# catalog_admin/export.py
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import EmptyExportError
from .models import Product

logger = logging.getLogger(__name__)

CSV_HEADER = ["ID", "Title", "Price", "Category", "Image", "Description"]


def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def product_row(product: Product) -> List[str]:
    return [
        str(product.id),
        _quote(product.title),
        f"{product.price:.2f}",
        _quote(product.category_name or "N/A"),
        _quote(product.first_image or ""),
        _quote(product.description or ""),
    ]


def export_csv(products: Sequence[Product]) -> str:
    """Serialize products (already filtered and sorted) into one CSV text blob."""
    if not products:
        raise EmptyExportError()
    lines = [",".join(CSV_HEADER)]
    lines.extend(",".join(product_row(p)) for p in products)
    return "\n".join(lines)


def export_filename(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return now.strftime("products_%Y-%m-%d_%H-%M.csv")


def write_export(products: Sequence[Product], directory: str = ".", now: Optional[datetime] = None) -> Path:
    content = export_csv(products)
    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / export_filename(now)
    path.write_text(content, encoding="utf-8")
    logger.info("Exported %d products to %s", len(products), path)
    return path
