# storefront/repos/price_repo.py
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List

import requests

from storefront.utils.retry import http_retry, io_retry
from storefront.utils.settings import HTTP_TIMEOUT_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class PriceStoreError(Exception):
    """Blad I/O przy odczycie albo zapisie price store."""


class PriceStore:
    """
    Price store czytany i zapisywany hurtowo (cala lista naraz).
    Brak api per-rekord, ostatni zapis wygrywa.
    """

    def read(self) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def write(self, records: List[Dict[str, Any]]) -> int:
        raise NotImplementedError


class JsonFilePriceStore(PriceStore):
    def __init__(self, path: str | Path):
        self.path = Path(path)

    def read(self) -> List[Dict[str, Any]]:
        try:
            data = self._read_text()
        except OSError as e:
            logger.error(f"Nie mozna odczytac price store {self.path}: {e}")
            raise PriceStoreError("Failed to read prices") from e

        try:
            records = json.loads(data)
        except json.JSONDecodeError as e:
            logger.error(f"Uszkodzony price store {self.path}: {e}")
            raise PriceStoreError("Failed to read prices") from e

        if not isinstance(records, list):
            raise PriceStoreError("Failed to read prices")
        return records

    def write(self, records: List[Dict[str, Any]]) -> int:
        #2 spacje wciecia, tak jak istniejacy plik (inne narzedzia robia diff)
        text = json.dumps(records, indent=2, ensure_ascii=False)
        try:
            self._replace(text)
        except OSError as e:
            logger.error(f"Nie mozna zapisac price store {self.path}: {e}")
            raise PriceStoreError("Failed to write prices") from e

        logger.info(f"Price store {self.path} nadpisany, rekordow: {len(records)}")
        return len(records)

    @io_retry()
    def _read_text(self) -> str:
        return self.path.read_text(encoding="utf-8")

    @io_retry()
    def _replace(self, text: str) -> None:
        #zapis do pliku tymczasowego + os.replace = atomowa podmiana pliku
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=".prices-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


class HttpPriceSource(PriceStore):
    """Price store dostepny przez http (tylko odczyt)."""

    def __init__(self, url: str, timeout: float | None = None):
        self.url = url
        self.timeout = timeout or HTTP_TIMEOUT_SECONDS

    def read(self) -> List[Dict[str, Any]]:
        try:
            records = self._fetch()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Nie mozna pobrac price store z {self.url}: {e}")
            raise PriceStoreError("Failed to fetch prices") from e

        if not isinstance(records, list):
            raise PriceStoreError("Failed to fetch prices")
        return records

    def write(self, records: List[Dict[str, Any]]) -> int:
        raise PriceStoreError("Remote price store is read-only")

    @http_retry()
    def _fetch(self):
        logger.info(f"PriceSource GET {self.url}")
        resp = requests.get(self.url, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()
