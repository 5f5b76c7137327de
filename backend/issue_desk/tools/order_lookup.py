import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

load_dotenv()

DATA_DIR = Path(__file__).resolve().parents[1] / "data"
ORDERS_PATH = Path(os.getenv("ORDERS_PATH", str(DATA_DIR / "orders.json")))


def _load_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def get_order_item(order_item_id: str) -> Optional[Dict[str, Any]]:
    """
    Returns the line item with its parent order attached under "order"
    (the order copy carries no "items" list).
    """
    orders = _load_json(ORDERS_PATH)
    for o in orders:
        for item in o.get("items", []):
            if item.get("order_item_id") == order_item_id:
                order = {k: v for k, v in o.items() if k != "items"}
                return {**item, "order": order}
    return None


def fulfilled_at(order: Dict[str, Any]) -> Optional[str]:
    return order.get("delivered_at") or order.get("shipped_at")
