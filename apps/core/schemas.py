"""Shared envelope schemas. Each app subclasses these with its typed payload field."""
from datetime import datetime
from typing import Optional
from ninja import Schema


class EnvelopeOut(Schema):
    success: bool
    message: Optional[str] = None
    timestamp: datetime


class PageEnvelopeOut(EnvelopeOut):
    total_count: int
    has_next: bool = False
    has_previous: bool = False
    current_page: Optional[int] = None
    page_size: Optional[int] = None


class ListEnvelopeOut(EnvelopeOut):
    total_count: int


class ErrorOut(Schema):
    detail: str
