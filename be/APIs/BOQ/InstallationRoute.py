"""
Installed Product API Routes

Technicians record one serial-numbered unit at a time against a line of an
Approved BOQ. The per-line quota is enforced in the database: the insert only
goes through when a guarded UPDATE could bump ``installed_count`` below
``qty``, so concurrent submissions can never over-install a line.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from APIs.Core import extract_document_id, get_by_document_id, get_current_user, get_db
from Models.Admin.User import User
from Models.BOQ.BillOfQuantities import BOQ, BOQItem
from Models.BOQ.InstalledProduct import InstalledProduct
from Schemas.Admin.UserSchema import user_ref
from Schemas.BOQ.CommonSchema import CollectionResponse, EntityResponse, WriteRequest, relation_ref
from Schemas.BOQ.InstallationSchema import InstallationCreate, InstallationStateUpdate, InstalledProductOut
from utils.access_control import create_audit_log, require_role
from utils.boq_state_machine import APPROVED
from utils.query_filters import FilterError, apply_filters, paginate, parse_filters, parse_pagination

logger = logging.getLogger(__name__)

installationRouter = APIRouter(tags=["Installations"])

# the dashboard calls the stand a "site"
FILTER_ALIASES = {"site": "bus_stand"}


def installed_product_out(row: InstalledProduct) -> InstalledProductOut:
    return InstalledProductOut(
        id=row.id,
        document_id=row.document_id,
        product_name=row.product_name,
        group=row.group,
        serial_number=row.serial_number,
        installation_date=row.installation_date,
        state=row.state,
        remarks=row.remarks,
        installation_images=row.installation_images or [],
        replaced_at=row.replaced_at,
        boq=relation_ref(row.boq, name_attr="state"),
        boq_item_id=row.boq_item_id,
        bus_stand=relation_ref(row.bus_stand),
        installed_by=user_ref(row.installed_by),
    )


def _candidate_items(db: Session, boq: BOQ, body: InstallationCreate) -> List[BOQItem]:
    """BOQ lines the unit may be booked on, in booking order."""
    query = db.query(BOQItem).filter(BOQItem.boq_id == boq.id)
    if body.boq_item is not None:
        items = query.filter(BOQItem.id == body.boq_item).all()
    elif body.product_name:
        # a product may appear on several lines; fill them in line order
        items = query.filter(BOQItem.name == body.product_name).order_by(BOQItem.id).all()
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either boq_item or product_name is required"
        )
    if not items:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product is not part of this BOQ"
        )
    return items


def _claim_unit(db: Session, items: List[BOQItem]) -> Optional[BOQItem]:
    """Take one unit of quota from the first line that has any left."""
    for item in items:
        claimed = db.query(BOQItem).filter(
            BOQItem.id == item.id,
            BOQItem.installed_count < BOQItem.qty
        ).update(
            {BOQItem.installed_count: BOQItem.installed_count + 1},
            synchronize_session=False
        )
        if claimed:
            return item
    return None


@installationRouter.post("/installed-products", response_model=EntityResponse[InstalledProductOut],
                         status_code=status.HTTP_201_CREATED)
async def create_installed_product(
    payload: WriteRequest[InstallationCreate],
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Record one installed unit. 409 once the line's quantity is used up."""
    require_role(current_user, "technician")
    body = payload.data

    boq_document_id = extract_document_id(body.boq)
    if not boq_document_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A BOQ reference is required")
    boq = get_by_document_id(db, BOQ, boq_document_id, "BOQ")
    if boq.state != APPROVED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Installations can only be added to Approved BOQs (state is '{boq.state}')"
        )

    items = _candidate_items(db, boq, body)

    try:
        item = _claim_unit(db, items)
        if item is None:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"All {sum(i.qty for i in items)} units of '{items[0].name}' are already installed"
            )

        installed = InstalledProduct(
            product_name=item.name,
            group=item.group,
            serial_number=body.serial_number,
            installation_date=body.installation_date,
            remarks=body.remarks,
            installation_images=body.installation_images,
            boq_id=boq.id,
            boq_item_id=item.id,
            bus_stand_id=boq.bus_stand_id,
            installed_by_id=current_user.id,
        )
        db.add(installed)
        db.flush()
        create_audit_log(db, current_user.id, "INSTALL", "installed_product",
                         resource_id=installed.document_id, resource_name=item.name,
                         details=f"serial {body.serial_number} on BOQ {boq.document_id}", request=request)
        db.commit()
        db.refresh(installed)
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Installation on BOQ {boq.document_id} failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error recording installation: {str(e)}"
        )

    logger.info(f"User {current_user.id} installed '{item.name}' ({body.serial_number}) on BOQ {boq.document_id}")
    return {"data": installed_product_out(installed)}


@installationRouter.get("/installed-products", response_model=CollectionResponse[InstalledProductOut])
async def list_installed_products(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    query = db.query(InstalledProduct)
    try:
        query = apply_filters(query, InstalledProduct, parse_filters(request.query_params), FILTER_ALIASES)
    except FilterError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    page, page_size = parse_pagination(request.query_params)
    rows, meta = paginate(query.order_by(InstalledProduct.id), page, page_size)
    return {"data": [installed_product_out(r) for r in rows], "meta": meta}


@installationRouter.put("/installed-products/{document_id}", response_model=EntityResponse[InstalledProductOut])
async def update_installed_product_state(
    document_id: str,
    payload: WriteRequest[InstallationStateUpdate],
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Mark an installed unit Faulty or Replaced. The row itself is kept."""
    require_role(current_user, "technician")
    body = payload.data
    installed = get_by_document_id(db, InstalledProduct, document_id, "Installed product")

    previous_state = installed.state
    installed.state = body.state
    installed.remarks = body.remarks
    if body.state == "Replaced":
        installed.replaced_at = datetime.utcnow()

    create_audit_log(db, current_user.id, "UPDATE_STATE", "installed_product",
                     resource_id=installed.document_id, resource_name=installed.product_name,
                     details=f"{previous_state} -> {body.state}: {body.remarks}", request=request)
    db.commit()
    db.refresh(installed)

    logger.info(f"Installed product {document_id} marked {body.state} by user {current_user.id}")
    return {"data": installed_product_out(installed)}
