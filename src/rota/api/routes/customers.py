"""Customer book endpoints."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import List, Sequence

from fastapi import APIRouter, File, HTTPException, Query, Response, UploadFile, status

from ...models.domain import Customer, GeoPoint
from ...persistence.customers import CustomerNotFoundError, CustomerStore
from ...schemas.customers import (
    ContactLinksModel,
    CustomerCreate,
    CustomerModel,
    ExtractedCustomer,
    GeocodeRequest,
    GeocodeSummary,
    ImportSummary,
    TextImportRequest,
)
from ...services.customers import merge_extracted_customers, parse_customer_spreadsheet, search_customers
from ...services.extraction import ExtractionError, GeminiClient
from ...services.geocoding import Geocoder
from ...services.outputs.links import phone_url, whatsapp_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/customers", tags=["customers"])


def _to_model(customer: Customer) -> CustomerModel:
    return CustomerModel(**asdict(customer))


def _not_found(exc: CustomerNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


def _import_records(records: Sequence[ExtractedCustomer]) -> ImportSummary:
    store = CustomerStore()
    with store.locked():
        result = merge_extracted_customers(store.list_all(), records)
        store.replace_all(result.customers)
    return ImportSummary(
        received=len(records),
        created=result.created,
        merged=result.merged,
        skipped=result.skipped,
        total_customers=len(result.customers),
    )


@router.get("", response_model=List[CustomerModel], status_code=status.HTTP_200_OK)
def list_customers(q: str | None = Query(default=None, description="Search name, address, neighborhood or phone")) -> List[CustomerModel]:
    return [_to_model(customer) for customer in search_customers(CustomerStore().list_all(), q)]


@router.post("", response_model=CustomerModel, status_code=status.HTTP_201_CREATED)
def create_customer(payload: CustomerCreate) -> CustomerModel:
    customer = CustomerStore().create(Customer(id="", **payload.model_dump()))
    return _to_model(customer)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def clear_customers() -> Response:
    CustomerStore().clear()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/import/text", response_model=ImportSummary, status_code=status.HTTP_200_OK)
def import_from_text(payload: TextImportRequest) -> ImportSummary:
    try:
        records = GeminiClient().parse_text(payload.text)
    except ExtractionError as exc:
        logger.error(f"Text import failed: {exc}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Failed to process text: {exc}") from exc
    return _import_records(records)


@router.post("/import/file", response_model=ImportSummary, status_code=status.HTTP_200_OK)
def import_from_file(file: UploadFile = File(...)) -> ImportSummary:
    """Extract customers from an image or PDF with the generative model."""
    content = file.file.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty.")
    mime_type = file.content_type or "application/octet-stream"
    try:
        records = GeminiClient().parse_file(content, mime_type)
    except ExtractionError as exc:
        logger.error(f"File import failed for {file.filename}: {exc}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Failed to process file: {exc}") from exc
    if not records:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="No customers detected in the file.")
    return _import_records(records)


@router.post("/import/spreadsheet", response_model=ImportSummary, status_code=status.HTTP_200_OK)
def import_from_spreadsheet(file: UploadFile = File(...)) -> ImportSummary:
    if not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Filename is required.")
    try:
        records = parse_customer_spreadsheet(file.file.read(), file.filename)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _import_records(records)


@router.post("/geocode", response_model=GeocodeSummary, status_code=status.HTTP_200_OK)
def geocode_customers(payload: GeocodeRequest | None = None) -> GeocodeSummary:
    """Fill coordinates for customers without them (about one second per address)."""
    store = CustomerStore()
    customers = store.list_all()
    if payload and payload.customer_ids:
        wanted = set(payload.customer_ids)
        missing = wanted - {customer.id for customer in customers}
        if missing:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown customer id(s): {', '.join(sorted(missing))}",
            )
        targets = [customer for customer in customers if customer.id in wanted]
    else:
        targets = customers

    # Runs on a snapshot without the file lock; only the found coordinates
    # are written back onto the current records.
    pending = [customer for customer in targets if not customer.has_coordinates]
    report = Geocoder().geocode_missing(pending)
    if report.succeeded:
        store.apply_coordinates(
            {
                customer.id: GeoPoint(customer.latitude, customer.longitude)
                for customer in pending
                if customer.has_coordinates
            }
        )
    return GeocodeSummary(processed=report.processed, succeeded=report.succeeded, failed=report.failed)


@router.get("/{customer_id}", response_model=CustomerModel, status_code=status.HTTP_200_OK)
def get_customer(customer_id: str) -> CustomerModel:
    try:
        return _to_model(CustomerStore().get(customer_id))
    except CustomerNotFoundError as exc:
        raise _not_found(exc) from exc


@router.put("/{customer_id}", response_model=CustomerModel, status_code=status.HTTP_200_OK)
def update_customer(customer_id: str, payload: CustomerCreate) -> CustomerModel:
    try:
        customer = CustomerStore().update(Customer(id=customer_id, **payload.model_dump()))
    except CustomerNotFoundError as exc:
        raise _not_found(exc) from exc
    return _to_model(customer)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(customer_id: str) -> Response:
    try:
        CustomerStore().delete(customer_id)
    except CustomerNotFoundError as exc:
        raise _not_found(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{customer_id}/contact", response_model=ContactLinksModel, status_code=status.HTTP_200_OK)
def get_contact_links(customer_id: str) -> ContactLinksModel:
    try:
        customer = CustomerStore().get(customer_id)
    except CustomerNotFoundError as exc:
        raise _not_found(exc) from exc
    return ContactLinksModel(
        customer_id=customer.id,
        whatsapp=[link for link in (whatsapp_url(phone) for phone in customer.phones) if link],
        phone=[link for link in (phone_url(phone) for phone in customer.phones) if link],
    )
