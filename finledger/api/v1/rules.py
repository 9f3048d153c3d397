"""Recurring charge rules: create with initial batch, list, materialize on demand"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from finledger.api.v1.schemas import (
    MaterializeResponse,
    RuleCreateRequest,
    RuleCreateResponse,
    RuleListResponse,
    RuleResponse,
)
from finledger.api.dependencies import get_owner_id, get_request_id, http_error, parse_uuid
from finledger.config import settings
from finledger.domain.exceptions import DomainException
from finledger.domain.models import RuleSpec
from finledger.infrastructure.database.models import RecurrenceRule
from finledger.infrastructure.database.session import get_db
from finledger.infrastructure.database.repositories import OccurrenceRepository, RuleRepository
from finledger.services.materializer import Materializer
from finledger.services.rules import create_rule
from finledger.utils.date_utils import horizon_date, utc_today

router = APIRouter()


def _rule_response(db_rule: RecurrenceRule, occurrence_count: int) -> RuleResponse:
    return RuleResponse(
        rule_id=str(db_rule.id),
        start_date=db_rule.start_date,
        payee=db_rule.payee,
        amount_cents=db_rule.amount_cents,
        category=db_rule.category,
        cadence=db_rule.cadence,
        interval=db_rule.interval,
        end_date=db_rule.end_date,
        count=db_rule.count,
        last_generated=db_rule.last_generated,
        occurrence_count=occurrence_count,
    )


@router.post("/rules", response_model=RuleCreateResponse, status_code=201)
def add_rule(
    request_body: RuleCreateRequest,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """
    Create a recurring charge and materialize its first batch.

    Flow:
    1. Validate cadence, interval and count (nothing written on failure)
    2. Insert the rule
    3. Materialize up to the initial batch size, bounded by end date and count
    4. Commit rule, occurrences and watermark together
    """
    request_id = get_request_id(request)
    spec = RuleSpec(**request_body.model_dump())

    try:
        db_rule, result = create_rule(db, owner_id, spec)
        occurrence_count = OccurrenceRepository(db).count_for_rule(db_rule.id)
    except DomainException as e:
        db.rollback()
        logging.warning(f"Rule rejected: {e}", extra={"request_id": request_id, "owner_id": owner_id})
        raise http_error(e)
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return RuleCreateResponse(rule=_rule_response(db_rule, occurrence_count), created_dates=result.created)


@router.get("/rules", response_model=RuleListResponse)
def list_rules(owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db)):
    """List the owner's rules with their watermark and stored occurrence count"""
    rules = RuleRepository(db).list_by_owner(owner_id)
    counts = OccurrenceRepository(db).counts_by_rule(owner_id)
    return RuleListResponse(
        owner_id=owner_id,
        rules=[_rule_response(r, counts.get(r.id, 0)) for r in rules],
    )


@router.post("/rules/{rule_id}/materialize", response_model=MaterializeResponse)
def materialize_rule(
    rule_id: str,
    request: Request,
    horizon_days: int = Query(settings.horizon_days, ge=0, description="Days ahead to cover"),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Run one materialization pass for a rule up to today + horizon_days"""
    request_id = get_request_id(request)
    rule_uuid = parse_uuid(rule_id, "rule")

    try:
        RuleRepository(db).get(owner_id, rule_uuid)
        # End the ownership read before waiting on the rule lock; a sweep holding
        # the lock needs the database to finish
        db.rollback()
        result = Materializer(db, trigger="manual").materialize(
            rule_uuid,
            horizon=horizon_date(utc_today(), horizon_days),
        )
    except DomainException as e:
        db.rollback()
        raise http_error(e)
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return MaterializeResponse(
        rule_id=result.rule_id,
        created_dates=result.created,
        watermark=result.watermark,
        duplicates_skipped=result.duplicates_skipped,
    )
