# storefront/services/promo_service.py
import random
from datetime import datetime, date
from typing import Any, Dict, List, Optional, Sequence

from storefront.domain.schemas import Product

FLASH_SALE_SIZE = 4
FLASH_SALE_DISCOUNT_PERCENT = 11

RARITY_TIERS = (
    (500000, "MYTHICAL"),
    (200000, "LEGENDARY"),
    (100000, "RARE"),
    (50000, "UNCOMMON"),
)


def date_seed(day: date) -> int:
    #suma kodow znakow daty YYYY-MM-DD, ten sam zestaw przez caly dzien
    return sum(ord(ch) for ch in day.isoformat())


def flash_sale_items(products: Sequence[Product], day: date) -> List[Dict[str, Any]]:
    if not products:
        return []

    rng = random.Random(date_seed(day))
    shuffled = sorted(products, key=lambda p: p.id)
    rng.shuffle(shuffled)

    return [
        {
            **p.model_dump(),
            "original_price": p.price,
            "price": p.price * (100 - FLASH_SALE_DISCOUNT_PERCENT) // 100,
        }
        for p in shuffled[:FLASH_SALE_SIZE]
    ]


def time_left_today(now: datetime) -> str:
    end_of_day = now.replace(hour=23, minute=59, second=59, microsecond=0)
    diff = int((end_of_day - now).total_seconds())
    if diff <= 0:
        return "00:00:00"
    hours, rest = divmod(diff, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def rarity_for(price: int) -> str:
    for threshold, name in RARITY_TIERS:
        if price >= threshold:
            return name
    return "COMMON"


def lucky_pick(products: Sequence[Product], rng: Optional[random.Random] = None) -> Product:
    if not products:
        raise LookupError("No items available")
    rng = rng or random.Random()
    return rng.choice(list(products))
