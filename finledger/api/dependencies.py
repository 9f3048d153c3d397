"""Dependency injection for FastAPI endpoints"""

import uuid
from fastapi import Header, HTTPException, Request
from finledger.domain.exceptions import (
    DomainException,
    DuplicateOccurrence,
    InvalidCadence,
    InvalidCount,
    InvalidInterval,
    InvalidTransactionData,
)


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_owner_id(x_owner_id: str = Header(..., min_length=1, description="Ledger owner identifier")) -> str:
    """Owner resolved upstream by the authentication layer"""
    return x_owner_id


def parse_uuid(value: str, label: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label} ID format")


_VALIDATION_ERRORS = (InvalidCadence, InvalidInterval, InvalidCount, InvalidTransactionData)


def http_error(e: DomainException) -> HTTPException:
    """Map a domain exception onto the HTTP status the API reports"""
    if isinstance(e, _VALIDATION_ERRORS):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, DuplicateOccurrence):
        return HTTPException(
            status_code=409,
            detail="An upcoming charge with the same payee and date already exists.",
        )
    # OwnerContextMissing and the *NotFound family
    return HTTPException(status_code=404, detail=str(e))
