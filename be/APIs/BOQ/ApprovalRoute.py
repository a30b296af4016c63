"""
Approval Workflow API Routes

Moves BOQs through the lifecycle table in utils.boq_state_machine.
Leaving the pending states freezes every line's unit price and persists the
committed total; reaching Installed requires every line to be fully installed.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from typing import List
from datetime import datetime
import logging

from Schemas.BOQ.ApprovalSchema import (
    AvailableTransitions,
    TransitionRequest,
    TransitionResponse,
    TransitionRule,
)
from APIs.BOQ.BOQRoute import get_visible_boq, load_price_index
from APIs.Core import get_current_user, get_db
from Models.Admin.User import User
from Models.BOQ.InstalledProduct import InstalledProduct
from utils.access_control import create_audit_log, role_name
from utils.boq_state_machine import (
    APPROVED,
    COMPLETED,
    INSTALLED,
    PENDING_APPROVAL,
    TRANSITIONS,
    TransitionError,
    TransitionForbidden,
    available_transitions,
    commits_prices,
    validate_transition,
)
from utils.pricing import boq_total, snapshot_prices
from utils.reconciliation import all_installed, reconcile

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Approvals"])


@router.post("/boqs/{document_id}/transition", response_model=TransitionResponse)
async def transition_boq(
    document_id: str,
    body: TransitionRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Move a BOQ to ``body.state`` if the table and the caller's role allow it."""
    boq = get_visible_boq(db, current_user, document_id)
    previous_state = boq.state
    role = role_name(current_user)

    try:
        validate_transition(previous_state, body.state, role)
    except TransitionForbidden as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except TransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if body.state == INSTALLED:
        installations = db.query(InstalledProduct).filter(InstalledProduct.boq_id == boq.id).all()
        if not all_installed(reconcile(boq.items, installations, previous_state)):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Every BOQ line must be fully installed before marking it Installed"
            )

    prices_committed = commits_prices(previous_state, body.state)
    try:
        if prices_committed:
            index = load_price_index(db)
            written = snapshot_prices(boq.items, index)
            boq.total_cost = boq_total(boq.items, body.state, index)
            boq.committed_at = datetime.utcnow()
            logger.info(f"BOQ {boq.document_id}: froze {written} line prices, total {boq.total_cost}")

        boq.state = body.state
        if body.state in (PENDING_APPROVAL, APPROVED):
            boq.approved_by_id = current_user.id
        elif body.state == COMPLETED:
            boq.confirmed_by_id = current_user.id
        if body.remarks:
            boq.remarks = body.remarks

        create_audit_log(
            db, current_user.id, "TRANSITION", "boq",
            resource_id=boq.document_id,
            details=f"{previous_state} -> {body.state}",
            request=request
        )
        db.commit()
        db.refresh(boq)
    except Exception as e:
        db.rollback()
        logger.error(f"BOQ {document_id} transition failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error updating BOQ state: {str(e)}"
        )

    logger.info(f"BOQ {boq.document_id} moved {previous_state} -> {boq.state} by user {current_user.id}")

    return TransitionResponse(
        document_id=boq.document_id,
        previous_state=previous_state,
        state=boq.state,
        total_cost=boq.total_cost or 0,
        prices_committed=prices_committed
    )


@router.get("/boqs/{document_id}/transitions", response_model=AvailableTransitions)
async def get_available_transitions(
    document_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    boq = get_visible_boq(db, current_user, document_id)
    role = role_name(current_user)
    return AvailableTransitions(
        document_id=boq.document_id,
        state=boq.state,
        role=role,
        available=available_transitions(boq.state, role)
    )


@router.get("/boq-transitions", response_model=List[TransitionRule])
async def list_transition_rules(current_user: User = Depends(get_current_user)):
    return [
        TransitionRule(source=t.source, target=t.target, required_role=t.required_role)
        for t in TRANSITIONS
    ]
