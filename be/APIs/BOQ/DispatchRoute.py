"""
Material Dispatch API Routes

District coordinators send material to the assemblies of their district;
the receiving assembly confirms delivery. A dispatch is Pending until
received and Delivered afterwards; delivery can be confirmed only once.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from APIs.Core import extract_document_id, get_by_document_id, get_current_user, get_db
from Models.Admin.User import User
from Models.BOQ.Dispatch import Dispatch
from Models.BOQ.Location import Assembly, District
from Models.BOQ.UploadedFile import UploadedFile
from Schemas.Admin.UserSchema import user_ref
from Schemas.BOQ.CommonSchema import CollectionResponse, EntityResponse, WriteRequest, relation_ref
from Schemas.BOQ.DispatchSchema import DispatchCreate, DispatchOut, DispatchReceive
from utils.access_control import create_audit_log, is_admin, require_role
from utils.query_filters import FilterError, apply_filters, paginate, parse_filters, parse_pagination

logger = logging.getLogger(__name__)

dispatchRouter = APIRouter(tags=["Dispatches"])

DISPATCH_PENDING = "Pending"
DISPATCH_DELIVERED = "Delivered"


def dispatch_out(row: Dispatch) -> DispatchOut:
    return DispatchOut(
        id=row.id,
        document_id=row.document_id,
        material_name=row.material_name,
        quantity=row.quantity,
        state=row.state,
        remarks=row.remarks,
        from_district=relation_ref(row.from_district),
        to_assembly=relation_ref(row.to_assembly, name_attr="assembly_no"),
        photo_url=row.photo.url if row.photo else None,
        dispatched_by=user_ref(row.dispatched_by),
        dispatched_on=row.dispatched_on,
        received_by=user_ref(row.received_by),
        received_on=row.received_on,
    )


@dispatchRouter.post("/dispatches", response_model=EntityResponse[DispatchOut], status_code=status.HTTP_201_CREATED)
async def create_dispatch(
    payload: WriteRequest[DispatchCreate],
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    require_role(current_user, "coordinator")
    body = payload.data

    district = get_by_document_id(db, District, extract_document_id(body.from_district) or "", "District")
    assembly = get_by_document_id(db, Assembly, extract_document_id(body.to_assembly) or "", "Assembly")
    if assembly.district_id != district.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail="Assembly does not belong to the dispatching district")
    if not is_admin(current_user) and district.coordinator_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN,
                            detail="Only the district's coordinator can dispatch from it")
    if body.photo is not None and db.query(UploadedFile).filter(UploadedFile.id == body.photo).first() is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Upload {body.photo} not found")

    dispatch = Dispatch(
        material_name=body.material_name.strip(),
        quantity=body.quantity,
        state=DISPATCH_PENDING,
        remarks=body.remarks,
        from_district_id=district.id,
        to_assembly_id=assembly.id,
        photo_id=body.photo,
        dispatched_by_id=current_user.id,
    )
    db.add(dispatch)
    db.flush()
    create_audit_log(db, current_user.id, "DISPATCH", "dispatch", resource_id=dispatch.document_id,
                     resource_name=dispatch.material_name,
                     details=f"{dispatch.quantity} to assembly {assembly.assembly_no}", request=request)
    db.commit()
    db.refresh(dispatch)

    logger.info(f"Dispatch {dispatch.document_id}: {dispatch.quantity} x '{dispatch.material_name}' "
                f"{district.name} -> {assembly.assembly_no} by user {current_user.id}")
    return {"data": dispatch_out(dispatch)}


@dispatchRouter.get("/dispatches", response_model=CollectionResponse[DispatchOut])
async def list_dispatches(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Dispatches, filterable e.g. by ``filters[from_district][documentId][$eq]``."""
    try:
        query = apply_filters(db.query(Dispatch), Dispatch, parse_filters(request.query_params))
    except FilterError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    page, page_size = parse_pagination(request.query_params)
    rows, meta = paginate(query.order_by(Dispatch.dispatched_on.desc(), Dispatch.id.desc()), page, page_size)
    return {"data": [dispatch_out(r) for r in rows], "meta": meta}


@dispatchRouter.put("/dispatches/{document_id}/receive", response_model=EntityResponse[DispatchOut])
async def receive_dispatch(
    document_id: str,
    request: Request,
    body: DispatchReceive = DispatchReceive(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Confirm delivery at the receiving assembly."""
    require_role(current_user, "coordinator")
    dispatch = get_by_document_id(db, Dispatch, document_id, "Dispatch")

    assembly = dispatch.to_assembly
    if not is_admin(current_user) and assembly.coordinator_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN,
                            detail="Only the receiving assembly's coordinator can confirm delivery")
    if dispatch.state != DISPATCH_PENDING:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT,
                            detail=f"Dispatch is already {dispatch.state}")

    dispatch.state = DISPATCH_DELIVERED
    dispatch.received_by_id = current_user.id
    dispatch.received_on = datetime.utcnow()
    if body.remarks:
        dispatch.remarks = body.remarks
    create_audit_log(db, current_user.id, "RECEIVE", "dispatch", resource_id=dispatch.document_id,
                     resource_name=dispatch.material_name, request=request)
    db.commit()
    db.refresh(dispatch)

    logger.info(f"Dispatch {dispatch.document_id} received at assembly {assembly.assembly_no} "
                f"by user {current_user.id}")
    return {"data": dispatch_out(dispatch)}
