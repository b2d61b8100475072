# storefront/services/image_resolver.py
import json
import threading
import time
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Optional

import requests

from storefront.utils.retry import http_retry
from storefront.utils.settings import (
    HTTP_TIMEOUT_SECONDS,
    IMAGE_MAPPING_PATH,
    IMAGE_MAPPING_URL,
    IMAGE_RETRY_SECONDS,
    PLACEHOLDER_IMAGE,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CacheState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


def file_mapping_loader(path: str | Path) -> Callable[[], Dict[str, str]]:
    def load() -> Dict[str, str]:
        with open(path, encoding="utf-8") as fh:
            return json.load(fh)
    return load


def http_mapping_loader(url: str, timeout: float | None = None) -> Callable[[], Dict[str, str]]:
    @http_retry()
    def load() -> Dict[str, str]:
        logger.info(f"ImageCache GET {url}")
        resp = requests.get(url, timeout=timeout or HTTP_TIMEOUT_SECONDS)
        resp.raise_for_status()
        return resp.json()
    return load


class ImageCache:
    """
    Cache nazwa -> url obrazka, ladowany raz na czas zycia procesu.

    -stany: uninitialized -> loading -> ready
    -rownolegle wywolania czekaja na ten sam ladowanie (jeden fetch)
    -blad ladowania = placeholder i powrot do uninitialized, kolejna proba
     dopiero po retry_seconds
    """

    def __init__(
        self,
        loader: Callable[[], Dict[str, str]],
        placeholder: str = PLACEHOLDER_IMAGE,
        retry_seconds: float = IMAGE_RETRY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._loader = loader
        self.placeholder = placeholder
        self.retry_seconds = retry_seconds
        self._clock = clock
        self._mapping: Dict[str, str] = {}
        self._state = CacheState.UNINITIALIZED
        self._failed_at: Optional[float] = None
        self._lock = threading.Lock()
        self._loaded = threading.Event()

    @property
    def state(self) -> CacheState:
        return self._state

    def ensure_loaded(self) -> None:
        with self._lock:
            if self._state is CacheState.READY:
                return
            owner = self._state is CacheState.UNINITIALIZED
            if owner and self._failed_at is not None:
                if self._clock() - self._failed_at < self.retry_seconds:
                    return
            if owner:
                self._state = CacheState.LOADING
                self._loaded.clear()

        if not owner:
            #ktos inny juz laduje, czekamy na ten sam wynik
            self._loaded.wait()
            return

        mapping: Optional[Dict[str, str]] = None
        try:
            raw = self._loader()
            if isinstance(raw, dict):
                mapping = {str(k): str(v) for k, v in raw.items() if v}
            else:
                logger.warning("Mapa obrazkow nie jest obiektem json, uzywam placeholdera")
        except (OSError, ValueError, requests.RequestException) as e:
            logger.warning(f"Nie udalo sie zaladowac mapy obrazkow: {e}")
        finally:
            #nawet przy nieoczekiwanym bledzie czekajacy nie moga wisiec
            with self._lock:
                if mapping is None:
                    self._mapping = {}
                    self._state = CacheState.UNINITIALIZED
                    self._failed_at = self._clock()
                else:
                    self._mapping = mapping
                    self._state = CacheState.READY
                    self._failed_at = None
                self._loaded.set()

        if mapping is not None:
            logger.info(f"Mapa obrazkow zaladowana, wpisow: {len(mapping)}")

    def lookup(self, name: str) -> Optional[str]:
        self.ensure_loaded()
        return self._mapping.get(name)

    def resolve(self, name: str) -> str:
        return self.lookup(name) or self.placeholder

    def invalidate(self) -> None:
        with self._lock:
            if self._state is CacheState.LOADING:
                return
            self._mapping = {}
            self._state = CacheState.UNINITIALIZED
            self._failed_at = None


def build_image_cache() -> ImageCache:
    if IMAGE_MAPPING_URL:
        return ImageCache(http_mapping_loader(IMAGE_MAPPING_URL))
    return ImageCache(file_mapping_loader(IMAGE_MAPPING_PATH))
