# storefront/services/admin_service.py
import io
import zipfile
from typing import Any, Dict, List

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from pydantic import TypeAdapter, ValidationError

from storefront.domain.schemas import PriceRecord
from storefront.repos.price_repo import PriceStore
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
TEMPLATE_COLUMNS = ("name", "hero", "qty", "price")

_records_adapter = TypeAdapter(List[PriceRecord])


def _cell(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        return value.strip()
    return value


def parse_price_sheet(content: bytes) -> List[Dict[str, Any]]:
    """
    Pierwszy arkusz -> lista rekordow. Pierwszy wiersz to naglowki,
    puste komorki sa pomijane (rekord nie ma wtedy tego klucza).
    """
    try:
        wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        raise ValueError("Failed to process the uploaded file.") from e

    try:
        ws = wb.worksheets[0]
        rows = ws.iter_rows(values_only=True)
        header_row = next(rows, None)
        if header_row is None:
            return []
        headers = [str(h).strip() if h is not None else "" for h in header_row]

        records: List[Dict[str, Any]] = []
        for row_no, row in enumerate(rows, start=2):
            record = {
                key: _cell(value)
                for key, value in zip(headers, row)
                if key and value is not None and value != ""
            }
            if not record:
                continue
            if not isinstance(record.get("name"), str) or not record["name"]:
                raise ValueError(f"Row {row_no} has no item name")
            records.append(record)
        return records
    finally:
        wb.close()


def build_price_template(records: List[Dict[str, Any]]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Prices"
    ws.append(list(TEMPLATE_COLUMNS))
    for r in records:
        ws.append([
            r.get("name"),
            r.get("hero") or "",
            r.get("qty"),
            r.get("price") if r.get("price") is not None else 0,
        ])

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


class AdminService:
    """
    Edycja cen przez admina. Kazdy zapis to hurtowa podmiana calego price store,
    klient wysyla kompletna liste.
    """

    def __init__(self, store: PriceStore):
        self.store = store

    def get_prices(self) -> List[Dict[str, Any]]:
        return self.store.read()

    def replace_prices(self, payload: Any) -> int:
        if not isinstance(payload, list):
            raise ValueError("Invalid data format")
        try:
            _records_adapter.validate_python(payload)
        except ValidationError as e:
            raise ValueError(f"Invalid price record: {e.errors()[0]['msg']}") from e

        count = self.store.write(payload)
        logger.info(f"Admin nadpisal ceny, rekordow: {count}")
        return count

    def upload_spreadsheet(self, content_type: str | None, content: bytes | None) -> int:
        if not content or content_type != XLSX_MIME:
            raise ValueError("Invalid or missing file. Please upload an Excel (.xlsx) file.")

        records = parse_price_sheet(content)
        #hurtowa podmiana: pola ktorych nie ma w arkuszu (np. hero) znikaja
        count = self.store.write(records)
        logger.info(f"Ceny zaktualizowane z arkusza, rekordow: {count}")
        return count

    def export_template(self) -> bytes:
        return build_price_template(self.store.read())
