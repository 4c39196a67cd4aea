"""Customer-facing API schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class CustomerBase(BaseModel):
    name: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    phones: List[str] = Field(default_factory=list)
    secondary_addresses: List[str] = Field(default_factory=list)
    status: Optional[str] = None
    last_visit: Optional[str] = None
    notes: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class CustomerCreate(CustomerBase):
    pass


class CustomerModel(CustomerBase):
    id: str


class ExtractedCustomer(BaseModel):
    """One row pulled out of free text, a document or a spreadsheet."""

    name: Optional[str] = None
    address: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class TextImportRequest(BaseModel):
    text: str = Field(..., min_length=1)


class ImportSummary(BaseModel):
    received: int
    created: int
    merged: int
    skipped: int
    total_customers: int


class ContactLinksModel(BaseModel):
    customer_id: str
    whatsapp: List[str]
    phone: List[str]


class GeocodeRequest(BaseModel):
    customer_ids: Optional[List[str]] = Field(
        default=None,
        description="Customers to geocode. Defaults to every customer without coordinates.",
    )


class GeocodeSummary(BaseModel):
    processed: int
    succeeded: int
    failed: int
