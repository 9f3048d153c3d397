"""Upcoming charges: list, and manual create/edit/delete"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy.orm import Session

from finledger.api.v1.schemas import OccurrenceListResponse, OccurrenceRequest, OccurrenceResponse
from finledger.api.dependencies import get_owner_id, get_request_id, http_error, parse_uuid
from finledger.domain.exceptions import DomainException
from finledger.infrastructure.database.models import Occurrence
from finledger.infrastructure.database.session import get_db
from finledger.infrastructure.database.repositories import LedgerRepository, OccurrenceRepository

router = APIRouter()


def _occurrence_response(occurrence: Occurrence) -> OccurrenceResponse:
    return OccurrenceResponse(
        occurrence_id=str(occurrence.id),
        date=occurrence.date,
        payee=occurrence.payee,
        amount_cents=occurrence.amount_cents,
        category=occurrence.category,
        recurring=occurrence.recurring,
        rule_id=str(occurrence.rule_id) if occurrence.rule_id else None,
    )


@router.get("/occurrences", response_model=OccurrenceListResponse)
def list_occurrences(
    rule_id: Optional[str] = Query(None, description="Only occurrences generated from this rule"),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """List upcoming charges ordered by date"""
    rule_uuid = parse_uuid(rule_id, "rule") if rule_id else None
    occurrences = OccurrenceRepository(db).list_by_owner(owner_id, rule_id=rule_uuid)
    return OccurrenceListResponse(
        owner_id=owner_id,
        occurrences=[_occurrence_response(o) for o in occurrences],
    )


@router.post("/occurrences", response_model=OccurrenceResponse, status_code=201)
def add_occurrence(
    request_body: OccurrenceRequest,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Add a one-off upcoming charge; the same payee and date cannot be entered twice"""
    request_id = get_request_id(request)
    try:
        LedgerRepository(db).require(owner_id)
        occurrence = OccurrenceRepository(db).create_manual(
            owner_id,
            request_body.date,
            request_body.payee,
            request_body.amount_cents,
            request_body.category,
        )
        db.commit()
    except DomainException as e:
        db.rollback()
        raise http_error(e)
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return _occurrence_response(occurrence)


@router.put("/occurrences/{occurrence_id}", response_model=OccurrenceResponse)
def update_occurrence(
    occurrence_id: str,
    request_body: OccurrenceRequest,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Edit an upcoming charge; rule-generated charges keep their rule reference"""
    request_id = get_request_id(request)
    occurrence_uuid = parse_uuid(occurrence_id, "occurrence")

    try:
        repo = OccurrenceRepository(db)
        occurrence = repo.update(
            repo.get(owner_id, occurrence_uuid),
            request_body.date,
            request_body.payee,
            request_body.amount_cents,
            request_body.category,
        )
        db.commit()
    except DomainException as e:
        db.rollback()
        raise http_error(e)
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return _occurrence_response(occurrence)


@router.delete("/occurrences/{occurrence_id}", status_code=204)
def delete_occurrence(
    occurrence_id: str,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    request_id = get_request_id(request)
    occurrence_uuid = parse_uuid(occurrence_id, "occurrence")

    try:
        repo = OccurrenceRepository(db)
        repo.delete(repo.get(owner_id, occurrence_uuid))
        db.commit()
    except DomainException as e:
        db.rollback()
        raise http_error(e)
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return Response(status_code=204)
