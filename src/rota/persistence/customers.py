"""Customer book persistence backed by a JSON document."""

from __future__ import annotations

import logging
import secrets
import string
import threading
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Iterable, Mapping

from ..config import settings
from ..models.domain import Customer, GeoPoint
from .filesystem import FileStorage

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits
_CUSTOMER_FIELDS = {f.name for f in fields(Customer)}

# One lock per customer file, shared by every store instance in the process
_PATH_LOCKS: dict[Path, threading.RLock] = {}
_PATH_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    with _PATH_LOCKS_GUARD:
        return _PATH_LOCKS.setdefault(path, threading.RLock())


class CustomerNotFoundError(LookupError):
    def __init__(self, customer_id: str) -> None:
        super().__init__(f"Customer '{customer_id}' not found.")
        self.customer_id = customer_id


def new_customer_id() -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))


def customer_from_dict(data: dict[str, Any]) -> Customer:
    known = {key: value for key, value in data.items() if key in _CUSTOMER_FIELDS}
    known["phones"] = list(known.get("phones") or [])
    known["secondary_addresses"] = list(known.get("secondary_addresses") or [])
    return Customer(**known)


class CustomerStore:
    """Keeps the whole customer list in one JSON file.

    Every mutation rewrites the file. Reads return copies of the stored
    order; new manual records go to the top of the list, imports go to the
    bottom.
    """

    def __init__(self, path: Path | None = None, storage: FileStorage | None = None) -> None:
        self.path = (path or settings.customers_file).resolve()
        self.storage = storage or FileStorage(root=self.path.parent)
        self._lock = _lock_for(self.path)

    def _load(self) -> list[Customer]:
        try:
            raw = self.storage.read_json(self.path, default=[])
        except ValueError as exc:
            # json.JSONDecodeError is a ValueError
            logger.error(f"Customer file {self.path} is not valid JSON: {exc}")
            raise
        return [customer_from_dict(item) for item in raw or []]

    def _save(self, customers: Iterable[Customer]) -> None:
        self.storage.write_json(self.path, [asdict(customer) for customer in customers])

    def list_all(self) -> list[Customer]:
        with self._lock:
            return self._load()

    def get(self, customer_id: str) -> Customer:
        for customer in self.list_all():
            if customer.id == customer_id:
                return customer
        raise CustomerNotFoundError(customer_id)

    def get_many(self, customer_ids: Iterable[str]) -> list[Customer]:
        """Return customers in the order of ``customer_ids``; unknown ids raise."""
        by_id = {customer.id: customer for customer in self.list_all()}
        result = []
        for customer_id in customer_ids:
            if customer_id not in by_id:
                raise CustomerNotFoundError(customer_id)
            result.append(by_id[customer_id])
        return result

    def create(self, customer: Customer) -> Customer:
        with self._lock:
            customers = self._load()
            if not customer.id:
                customer.id = new_customer_id()
            customers.insert(0, customer)
            self._save(customers)
        logger.info(f"Created customer {customer.id}")
        return customer

    def update(self, customer: Customer) -> Customer:
        with self._lock:
            customers = self._load()
            for index, existing in enumerate(customers):
                if existing.id == customer.id:
                    customers[index] = customer
                    self._save(customers)
                    return customer
        raise CustomerNotFoundError(customer.id)

    def delete(self, customer_id: str) -> None:
        with self._lock:
            customers = self._load()
            remaining = [customer for customer in customers if customer.id != customer_id]
            if len(remaining) == len(customers):
                raise CustomerNotFoundError(customer_id)
            self._save(remaining)

    def replace_all(self, customers: Iterable[Customer]) -> list[Customer]:
        customers = list(customers)
        with self._lock:
            self._save(customers)
        return customers

    def locked(self):
        """Hold the file lock across a read-modify-write made of several calls.

        The lock is re-entrant, so store methods can be used inside the block.
        """
        return self._lock

    def apply_coordinates(self, points: Mapping[str, GeoPoint]) -> int:
        """Write coordinates onto the current records; returns how many changed.

        Customers deleted since ``points`` was computed, or that already have
        coordinates by now, are left alone.
        """
        with self._lock:
            customers = self._load()
            changed = 0
            for customer in customers:
                point = points.get(customer.id)
                if point is None or customer.has_coordinates:
                    continue
                customer.latitude = point.latitude
                customer.longitude = point.longitude
                changed += 1
            if changed:
                self._save(customers)
        return changed

    def clear(self) -> None:
        self.replace_all([])
        logger.info("Customer book cleared")
