# storefront/services/steam_client.py
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests
from bs4 import BeautifulSoup

from storefront.repos.price_repo import PriceStore, PriceStoreError
from storefront.utils.retry import http_retry
from storefront.utils.settings import (
    HTTP_TIMEOUT_SECONDS,
    PLACEHOLDER_IMAGE,
    STEAM_APP_ID,
    STEAM_CONTEXT_ID,
    STEAM_ID,
    STEAM_PROFILE_URL,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

ICON_BASE_URL = "https://steamcommunity-a.akamaihd.net/economy/image/"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def merge_inventory(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    """assets + descriptions -> pozycje zgrupowane po market_hash_name."""
    descriptions = {
        (d.get("classid"), d.get("instanceid")): d
        for d in payload.get("descriptions") or []
    }

    grouped: Dict[str, Dict[str, Any]] = {}
    for asset in payload.get("assets") or []:
        desc = descriptions.get((asset.get("classid"), asset.get("instanceid")), {})
        name = desc.get("market_hash_name") or "Unknown Item"
        try:
            amount = int(asset.get("amount") or 0)
        except (TypeError, ValueError):
            amount = 0

        if name in grouped:
            grouped[name]["qty"] += amount
            continue

        icon = desc.get("icon_url")
        grouped[name] = {
            "id": str(asset.get("assetid")),
            "name": name,
            "hero": desc.get("type") or None,
            "icon": f"{ICON_BASE_URL}{icon}" if icon else None,
            "qty": amount,
        }
    return list(grouped.values())


def relative_date(ts: Optional[int], now: datetime) -> str:
    if not ts:
        return "Recently"
    then = datetime.fromtimestamp(int(ts), tz=timezone.utc)
    days = abs((now - then).days)

    if days == 0:
        return "Today"
    if days == 1:
        return "1 day ago"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        weeks = days // 7
        return f"{weeks} week{'s' if weeks > 1 else ''} ago"
    if days < 365:
        months = days // 30
        return f"{months} month{'s' if months > 1 else ''} ago"
    years = days // 365
    return f"{years} year{'s' if years > 1 else ''} ago"


def parse_comments(html: str, now: datetime) -> List[Dict[str, str]]:
    soup = BeautifulSoup(html, "html.parser")
    comments = []
    for node in soup.select(".commentthread_comment"):
        author = node.select_one(".commentthread_author_link")
        avatar = node.select_one(".playerAvatar img")
        text = node.select_one(".commentthread_comment_text")
        stamp = node.select_one(".commentthread_comment_timestamp")

        ts = stamp.get("data-timestamp") if stamp else None
        comments.append({
            "author": author.get_text(strip=True) if author else "",
            "avatar": (avatar.get("src") if avatar else None) or PLACEHOLDER_IMAGE,
            "comment": text.get_text(strip=True) if text else "",
            "date": relative_date(int(ts) if ts and ts.isdigit() else None, now),
        })
    return [c for c in comments if c["comment"]]


class SteamClient:
    def __init__(self, steam_id: str = STEAM_ID, profile_url: str = STEAM_PROFILE_URL,
                 timeout: float | None = None):
        self.steam_id = steam_id
        self.profile_url = profile_url.rstrip("/")
        self.timeout = timeout or HTTP_TIMEOUT_SECONDS

    @http_retry()
    def fetch_inventory(self) -> Dict[str, Any]:
        url = (
            f"https://steamcommunity.com/inventory/{self.steam_id}/"
            f"{STEAM_APP_ID}/{STEAM_CONTEXT_ID}"
        )
        logger.info(f"SteamClient GET {url}")
        resp = requests.get(url, params={"l": "english", "count": 5000}, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    @http_retry()
    def fetch_comments_html(self) -> str:
        url = f"{self.profile_url}/allcomments"
        logger.info(f"SteamClient GET {url}")
        resp = requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=self.timeout)
        resp.raise_for_status()
        return resp.text

    def inventory_with_prices(self, store: PriceStore) -> List[Dict[str, Any]]:
        items = merge_inventory(self.fetch_inventory())

        try:
            prices = {
                r.get("name"): r.get("price") or 0
                for r in store.read()
                if isinstance(r, dict)
            }
        except PriceStoreError:
            logger.warning("Brak price store, domyslna cena 0")
            prices = {}

        for item in items:
            item["price"] = int(prices.get(item["name"], 0) or 0)
        return items

    def comments(self, page: int = 1, limit: int = 20,
                 now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        all_comments = parse_comments(self.fetch_comments_html(), now)
        start = (page - 1) * limit
        return {
            "comments": all_comments[start:start + limit],
            "page": page,
            "limit": limit,
            "total": len(all_comments),
            "has_more": start + limit < len(all_comments),
        }
