"""
BOQ API Routes

Raising, listing and reconciling Bills of Quantities.

Valuation follows utils.pricing: BOQs still Pending / Pending Purchase are
priced from the live catalog on every read, committed ones from the prices
frozen when they left those states. ``computed_total`` is always recomputed;
``total_cost`` is the persisted value written at creation and at commit.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from APIs.Core import extract_document_id, get_by_document_id, get_current_user, get_db
from Models.Admin.User import User
from Models.BOQ.BillOfQuantities import BOQ, BOQItem
from Models.BOQ.Hierarchy import BusStand, BusStation, Depot, Division
from Models.BOQ.InstalledProduct import InstalledProduct
from Models.BOQ.Product import Product
from Schemas.Admin.UserSchema import user_ref
from Schemas.BOQ.BOQSchema import (
    BOQCreate,
    BOQImportResult,
    BOQItemOut,
    BOQOut,
    NotifyRequest,
    ReconciliationOut,
    ReconciliationRowOut,
)
from Schemas.BOQ.CommonSchema import CollectionResponse, EntityResponse, WriteRequest, relation_ref
from utils.access_control import create_audit_log, require_role, role_name
from utils.boq_state_machine import PENDING, PENDING_PURCHASE
from utils.file_validation import read_csv_rows, validate_csv_file
from utils.pricing import PriceIndex, boq_total, build_price_index, line_total, unit_price
from utils.product_categories import BY_CATEGORY, PRODUCT_CATEGORIES
from utils.query_filters import FilterError, apply_filters, paginate, parse_filters, parse_pagination
from utils.reconciliation import all_installed, reconcile
from utils.selection import SelectionError, coerce_count

logger = logging.getLogger(__name__)

boqRouter = APIRouter(tags=["BOQ"])

RAISER_ROLES = ("coordinator", "surveyor", "purchase")
# roles that only ever see the BOQs they raised
OWN_BOQ_ROLES = ("coordinator", "surveyor")


# ===========================
# HELPERS
# ===========================

def load_price_index(db: Session) -> PriceIndex:
    return build_price_index(db.query(Product).all())


def boq_out(boq: BOQ, index: PriceIndex) -> BOQOut:
    items = [
        BOQItemOut(
            id=item.id,
            name=item.name,
            group=item.group,
            category=item.category,
            qty=item.qty,
            price=item.price or 0,
            unit_price_at_commit=item.unit_price_at_commit,
            unit_price=unit_price(item, boq.state, index),
            line_total=line_total(item, boq.state, index),
            installed_count=item.installed_count or 0,
            product=relation_ref(item.product),
        )
        for item in boq.items
    ]
    return BOQOut(
        id=boq.id,
        document_id=boq.document_id,
        state=boq.state,
        division=relation_ref(boq.division),
        depot=relation_ref(boq.depot),
        bus_station=relation_ref(boq.bus_station),
        bus_stand=relation_ref(boq.bus_stand),
        remarks=boq.remarks,
        survey_date=boq.survey_date,
        total_cost=boq.total_cost or 0,
        computed_total=boq_total(boq.items, boq.state, index),
        raised_by=user_ref(boq.raised_by),
        approved_by=user_ref(boq.approved_by),
        confirmed_by=user_ref(boq.confirmed_by),
        committed_at=boq.committed_at,
        items=items,
        created_at=boq.created_at,
        updated_at=boq.updated_at,
    )


def visible_boqs(db: Session, current_user: User):
    query = db.query(BOQ)
    if role_name(current_user) in OWN_BOQ_ROLES:
        query = query.filter(BOQ.raised_by_id == current_user.id)
    return query


def get_visible_boq(db: Session, current_user: User, document_id: str) -> BOQ:
    boq = get_by_document_id(db, BOQ, document_id, "BOQ")
    if role_name(current_user) in OWN_BOQ_ROLES and boq.raised_by_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"BOQ '{document_id}' not found")
    return boq


def _resolve(db: Session, model, value, label: str):
    document_id = extract_document_id(value)
    if not document_id:
        return None
    return get_by_document_id(db, model, document_id, label)


def resolve_site(db: Session, body: BOQCreate):
    """
    Resolve the division -> depot -> station -> stand chain of a payload.

    A child may only be given together with its parent, and must belong to it.
    """
    division = _resolve(db, Division, body.division, "Division")
    depot = _resolve(db, Depot, body.depot, "Depot")
    station = _resolve(db, BusStation, body.bus_station, "Bus station")
    stand = _resolve(db, BusStand, body.bus_stand, "Bus stand")

    chain = [("division", division), ("depot", depot), ("bus station", station), ("bus stand", stand)]
    for (parent_label, parent), (child_label, child) in zip(chain, chain[1:]):
        if child is not None and parent is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Select a {parent_label} before a {child_label}"
            )

    if depot is not None and depot.division_id != division.id:
        raise HTTPException(status_code=400, detail="Depot does not belong to the selected division")
    if station is not None and station.depot_id != depot.id:
        raise HTTPException(status_code=400, detail="Bus station does not belong to the selected depot")
    if stand is not None and stand.bus_station_id != station.id:
        raise HTTPException(status_code=400, detail="Bus stand does not belong to the selected bus station")

    return division, depot, station, stand


def build_items(db: Session, body: BOQCreate) -> List[BOQItem]:
    """Turn the ``*_selection`` rows into BOQ items; empty rows are dropped."""
    items = []
    for category in PRODUCT_CATEGORIES:
        rows = getattr(body, category.selection_key) or []
        for position, row in enumerate(rows):
            document_id = extract_document_id(row.get(category.ref_key))
            if not document_id:
                continue
            try:
                count = coerce_count(row.get("count"))
            except SelectionError as e:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail=f"{category.selection_key}[{position}]: {e}"
                )

            product = db.query(Product).filter(
                Product.document_id == document_id,
                Product.category == category.category
            ).first()
            if product is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail=f"{category.label} '{document_id}' not found"
                )

            items.append(BOQItem(
                category=category.category,
                product_id=product.id,
                name=product.name,
                group=category.label,
                qty=count,
                price=product.price or 0,
            ))
    return items


# ===========================
# ENDPOINTS
# ===========================

@boqRouter.post("/boqs", response_model=EntityResponse[BOQOut], status_code=status.HTTP_201_CREATED)
async def create_boq(
    payload: WriteRequest[BOQCreate],
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Raise a new BOQ from a selection payload. It starts in state Pending."""
    require_role(current_user, *RAISER_ROLES)
    body = payload.data

    division, depot, station, stand = resolve_site(db, body)
    items = build_items(db, body)
    if not items:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="BOQ has no product rows")

    try:
        boq = BOQ(
            division_id=division.id if division else None,
            depot_id=depot.id if depot else None,
            bus_station_id=station.id if station else None,
            bus_stand_id=stand.id if stand else None,
            state=PENDING,
            remarks=body.remarks,
            survey_date=body.survey_date,
            raised_by_id=current_user.id,
            items=items,
        )
        boq.total_cost = boq_total(items, boq.state, load_price_index(db))
        db.add(boq)
        db.flush()
        create_audit_log(db, current_user.id, "CREATE", "boq", resource_id=boq.document_id,
                         details=f"{len(items)} items, total {boq.total_cost}", request=request)
        db.commit()
        db.refresh(boq)
    except Exception as e:
        db.rollback()
        logger.error(f"BOQ creation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error creating BOQ: {str(e)}"
        )

    logger.info(f"BOQ {boq.document_id} raised by user {current_user.id} with {len(items)} items")
    return {"data": boq_out(boq, load_price_index(db))}


@boqRouter.get("/boqs", response_model=CollectionResponse[BOQOut])
async def list_boqs(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List BOQs with priced items. Coordinators and surveyors see their own only."""
    query = visible_boqs(db, current_user)
    try:
        query = apply_filters(query, BOQ, parse_filters(request.query_params))
    except FilterError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    page, page_size = parse_pagination(request.query_params)
    boqs, meta = paginate(query.order_by(BOQ.created_at.desc(), BOQ.id.desc()), page, page_size)

    index = load_price_index(db)
    return {"data": [boq_out(boq, index) for boq in boqs], "meta": meta}


@boqRouter.post("/boqs/import", response_model=BOQImportResult)
async def import_boqs(
    request: Request,
    file: UploadFile = File(..., description="CSV with a 'Bus Stand' column and one column per product"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Bulk-raise BOQs, one per CSV row, straight into Pending Purchase.

    Rows without a known bus stand or without any positive quantity are
    skipped. A failing row is rolled back and logged; earlier rows stay.
    """
    require_role(current_user, "purchase")
    await validate_csv_file(file)
    rows = read_csv_rows(await file.read())

    products = {}
    for product in db.query(Product).order_by(Product.id).all():
        products.setdefault(product.name.strip().lower(), product)
    stands = {s.name.strip().lower(): s for s in db.query(BusStand).all()}

    created = 0
    skipped: List[str] = []
    errors: List[str] = []

    for row_num, row in enumerate(rows, start=2):
        stand_name = row.get("Bus Stand")
        if not stand_name:
            continue
        stand = stands.get(stand_name.strip().lower())
        if stand is None:
            skipped.append(f"Row {row_num}: no bus stand named '{stand_name}', skipping")
            continue

        try:
            items = []
            for column, cell in row.items():
                product = products.get(column.strip().lower()) if column else None
                if product is None or cell in (None, "", "0"):
                    continue
                category = BY_CATEGORY.get(product.category)
                items.append(BOQItem(
                    category=product.category,
                    product_id=product.id,
                    name=product.name,
                    group=category.label if category else product.category,
                    qty=coerce_count(cell),
                    price=product.price or 0,
                ))

            if not items:
                skipped.append(f"Row {row_num}: no quantities for '{stand_name}'")
                continue

            boq = BOQ(
                division_id=stand.division_id,
                depot_id=stand.depot_id,
                bus_station_id=stand.bus_station_id,
                bus_stand_id=stand.id,
                state=PENDING_PURCHASE,
                remarks="Bulk Upload",
                raised_by_id=current_user.id,
                items=items,
            )
            boq.total_cost = sum(item.qty * item.price for item in items)
            db.add(boq)
            db.commit()
            created += 1
        except Exception as e:
            db.rollback()
            errors.append(f"Row {row_num} ({stand_name}): {e}")
            logger.error(f"BOQ import row {row_num} failed: {e}")

    create_audit_log(db, current_user.id, "IMPORT", "boq", resource_name=file.filename,
                     details=f"created={created} skipped={len(skipped)} errors={len(errors)}",
                     request=request)
    db.commit()
    logger.info(f"BOQ import by user {current_user.id}: {created} created, {len(errors)} errors")
    return BOQImportResult(created=created, skipped=skipped, errors=errors)


@boqRouter.get("/boqs/{document_id}", response_model=EntityResponse[BOQOut])
async def get_boq(
    document_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    boq = get_visible_boq(db, current_user, document_id)
    return {"data": boq_out(boq, load_price_index(db))}


@boqRouter.get("/boqs/{document_id}/reconciliation", response_model=ReconciliationOut)
async def get_boq_reconciliation(
    document_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Requested vs installed quantities per BOQ line."""
    boq = get_visible_boq(db, current_user, document_id)
    installations = db.query(InstalledProduct).filter(InstalledProduct.boq_id == boq.id).all()
    rows = reconcile(boq.items, installations, boq.state)

    return ReconciliationOut(
        document_id=boq.document_id,
        state=boq.state,
        items=[
            ReconciliationRowOut(
                item_id=r.item_id, name=r.name, group=r.group, qty=r.qty,
                installed_count=r.installed_count, remaining=r.remaining,
                fully_installed=r.fully_installed, can_add_installation=r.can_add_installation
            )
            for r in rows
        ],
        all_installed=all_installed(rows),
    )


@boqRouter.post("/notify/new-boq")
async def notify_new_boq(
    payload: NotifyRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Record that a new BOQ awaits purchase review."""
    query = db.query(BOQ)
    if isinstance(payload.boqId, int) or str(payload.boqId).isdigit():
        boq = query.filter(BOQ.id == int(payload.boqId)).first()
    else:
        boq = query.filter(BOQ.document_id == str(payload.boqId)).first()
    if boq is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"BOQ '{payload.boqId}' not found")

    pending_reviews = db.query(func.count(BOQ.id)).filter(BOQ.state.in_([PENDING, PENDING_PURCHASE])).scalar()
    create_audit_log(db, current_user.id, "NOTIFY", "boq", resource_id=boq.document_id,
                     details=f"new BOQ, {pending_reviews} awaiting review", request=request)
    db.commit()
    logger.info(f"New BOQ {boq.document_id} announced by user {current_user.id}; {pending_reviews} awaiting review")
    return {"message": "Notification recorded", "boq": boq.document_id, "pending_reviews": pending_reviews}
