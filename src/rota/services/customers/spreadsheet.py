"""Parse customer spreadsheets (CSV or XLSX) into importable records."""

from __future__ import annotations

import csv
import unicodedata
from io import BytesIO
from pathlib import Path
from typing import Any, Optional

from openpyxl import load_workbook

from ...schemas.customers import ExtractedCustomer

SUPPORTED_SUFFIXES = {".csv", ".xlsx"}

# Normalized header -> ExtractedCustomer field
HEADER_ALIASES: dict[str, str] = {
    "nome": "name",
    "name": "name",
    "cliente": "name",
    "endereco": "address",
    "address": "address",
    "bairro": "neighborhood",
    "neighborhood": "neighborhood",
    "cidade": "city",
    "city": "city",
    "estado": "state",
    "uf": "state",
    "state": "state",
    "telefone": "phone",
    "celular": "phone",
    "phone": "phone",
    "status": "status",
    "situacao": "status",
    "latitude": "latitude",
    "lat": "latitude",
    "longitude": "longitude",
    "lng": "longitude",
    "lon": "longitude",
}


def _normalize_header(header: Any) -> str:
    text = unicodedata.normalize("NFKD", str(header or "")).encode("ascii", "ignore").decode("ascii")
    return text.strip().lower()


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip().replace(",", "."))
    except ValueError as exc:
        raise ValueError(f"Unable to parse float from value '{value}'") from exc


def _coerce_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        # Phone numbers typed into Excel come back as floats
        value = int(value)
    text = str(value).strip()
    return text or None


def _read_rows(payload: bytes, suffix: str) -> tuple[list[str], list[list[Any]]]:
    if suffix == ".csv":
        lines = payload.decode("utf-8-sig").splitlines()
        reader = csv.reader(lines)
        rows = [row for row in reader]
        if not rows:
            return [], []
        return rows[0], rows[1:]

    workbook = load_workbook(filename=BytesIO(payload), read_only=True, data_only=True)
    try:
        worksheet = workbook.active
        all_rows = list(worksheet.iter_rows(values_only=True))
    finally:
        workbook.close()
    if not all_rows:
        return [], []
    headers = ["" if cell is None else str(cell) for cell in all_rows[0]]
    return headers, [list(row) for row in all_rows[1:]]


def parse_customer_spreadsheet(payload: bytes, filename: str) -> list[ExtractedCustomer]:
    """Read rows from a CSV or XLSX file using Portuguese or English column names."""

    suffix = Path(filename).suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ValueError("Only .csv and .xlsx files are supported.")

    headers, rows = _read_rows(payload, suffix)
    columns = {index: HEADER_ALIASES.get(_normalize_header(header)) for index, header in enumerate(headers)}
    if "name" not in columns.values():
        raise ValueError(f"Spreadsheet '{filename}' needs a name column (Nome/name).")

    records: list[ExtractedCustomer] = []
    for row in rows:
        if not any(cell not in (None, "") for cell in row):
            continue
        values: dict[str, Any] = {}
        for index, cell in enumerate(row):
            field_name = columns.get(index)
            if not field_name or field_name in values:
                continue
            if field_name in ("latitude", "longitude"):
                values[field_name] = _coerce_float(cell)
            else:
                values[field_name] = _coerce_text(cell)
        records.append(ExtractedCustomer(**values))
    return records
