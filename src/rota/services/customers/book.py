"""Customer book operations: search and merging of imported records."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import Sequence

from ...models.domain import Customer
from ...persistence.customers import new_customer_id
from ...schemas.customers import ExtractedCustomer
from ..geospatial import is_valid_coordinate

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = "Endereço não informado"
DEFAULT_STATUS = "Ativo"

_NON_DIGITS = re.compile(r"\D")


def digits_only(phone: str | None) -> str:
    return _NON_DIGITS.sub("", phone or "")


def _same_text(left: str | None, right: str | None) -> bool:
    return (left or "").strip().lower() == (right or "").strip().lower()


def search_customers(customers: Sequence[Customer], term: str | None) -> list[Customer]:
    """Filter by name, address, neighborhood (case-insensitive) or phone substring."""
    needle = (term or "").lower()
    if not needle:
        return list(customers)
    return [
        customer
        for customer in customers
        if needle in customer.name.lower()
        or (customer.address and needle in customer.address.lower())
        or any(needle in phone for phone in customer.phones)
        or (customer.neighborhood and needle in customer.neighborhood.lower())
    ]


@dataclass(slots=True)
class MergeResult:
    customers: list[Customer]
    created: int = 0
    merged: int = 0
    skipped: int = 0


def _find_match(customers: Sequence[Customer], record: ExtractedCustomer) -> int:
    record_digits = digits_only(record.phone)
    for index, customer in enumerate(customers):
        if _same_text(customer.name, record.name):
            return index
        if record_digits and any(digits_only(phone) == record_digits for phone in customer.phones):
            return index
    return -1


def merge_extracted_customers(
    existing: Sequence[Customer],
    records: Sequence[ExtractedCustomer],
) -> MergeResult:
    """Fold imported rows into the book.

    A row matches a customer with the same trimmed, case-insensitive name or
    the same digits-only phone. A match gains the row's address as a
    secondary address and its phone as an extra phone when they are new.
    Rows without a match are appended; rows without a name are skipped.
    """
    customers = list(existing)
    result = MergeResult(customers=customers)

    for record in records:
        if not record.name or not record.name.strip():
            result.skipped += 1
            continue

        index = _find_match(customers, record)
        if index >= 0:
            current = customers[index]
            secondary = list(current.secondary_addresses)
            phones = list(current.phones)
            if record.address and not _same_text(current.address, record.address):
                if not any(_same_text(addr, record.address) for addr in secondary):
                    secondary.append(record.address)
            if record.phone:
                record_digits = digits_only(record.phone)
                if not any(digits_only(phone) == record_digits for phone in phones):
                    phones.append(record.phone)
            customers[index] = replace(current, secondary_addresses=secondary, phones=phones)
            result.merged += 1
        else:
            # Out-of-range or non-finite coordinates are dropped so the customer gets geocoded
            located = is_valid_coordinate(record.latitude, record.longitude)
            customers.append(
                Customer(
                    id=new_customer_id(),
                    name=record.name,
                    address=record.address or DEFAULT_ADDRESS,
                    neighborhood=record.neighborhood or "",
                    city=record.city or "",
                    state=record.state or "",
                    phones=[record.phone] if record.phone else [],
                    secondary_addresses=[],
                    status=record.status or DEFAULT_STATUS,
                    latitude=record.latitude if located else None,
                    longitude=record.longitude if located else None,
                )
            )
            result.created += 1

    logger.info(
        f"Merged {len(records)} imported record(s): "
        f"{result.created} created, {result.merged} merged, {result.skipped} skipped"
    )
    return result
