"""
District, Coordinator & Dashboard API Routes

Districts sit above the assemblies of the polling-station side. Each
district and each assembly may be run by one coordinator: admins appoint
district coordinators, a district coordinator appoints the coordinators of
the assemblies in their own district.

/dashboard/summary aggregates the rollout in a handful of grouped counts:
assemblies, locations and surveys (optionally within one district), BOQs
by state and installed quantities (optionally within one division), and
material dispatches by state.
"""

import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from APIs.Admin.UserRoute import create_account
from APIs.BOQ.BOQRoute import visible_boqs
from APIs.Core import extract_document_id, get_by_document_id, get_current_user, get_db
from Models.Admin.User import Role, User
from Models.BOQ.BillOfQuantities import BOQ, BOQItem
from Models.BOQ.Dispatch import Dispatch
from Models.BOQ.Hierarchy import Division
from Models.BOQ.InstalledProduct import InstalledProduct
from Models.BOQ.Location import Assembly, District, Location, Survey
from Schemas.Admin.UserSchema import user_ref
from Schemas.BOQ.CommonSchema import CollectionResponse, EntityResponse, WriteRequest, relation_ref
from Schemas.BOQ.DistrictSchema import (
    CoordinatorCreate,
    CoordinatorOut,
    DashboardSummary,
    DistrictCreate,
    DistrictOut,
    InstallationTotals,
)
from utils.access_control import create_audit_log, is_admin, require_role
from utils.boq_state_machine import APPROVED, COMPLETED, INSTALLED
from utils.query_filters import FilterError, apply_filters, paginate, parse_filters, parse_pagination

logger = logging.getLogger(__name__)

districtRouter = APIRouter(tags=["Districts"])

COORDINATOR_ROLE = "coordinator"
# BOQs whose quantities are committed for installation
INSTALLING_STATES = (APPROVED, INSTALLED, COMPLETED)


def district_out(row: District) -> DistrictOut:
    return DistrictOut(
        id=row.id, document_id=row.document_id, name=row.name, code=row.code,
        coordinator=user_ref(row.coordinator),
        assemblies=[relation_ref(a, name_attr="assembly_no") for a in row.assemblies],
        created_at=row.created_at
    )


def coordinator_out(db: Session, user: User) -> CoordinatorOut:
    districts = db.query(District).filter(District.coordinator_id == user.id).order_by(District.name).all()
    assemblies = db.query(Assembly).filter(Assembly.coordinator_id == user.id).order_by(Assembly.assembly_no).all()
    return CoordinatorOut(
        id=user.id, document_id=user.document_id, username=user.username, email=user.email,
        full_name=user.full_name, phone_number=user.phone_number,
        districts=[relation_ref(d) for d in districts],
        assemblies=[relation_ref(a, name_attr="assembly_no") for a in assemblies],
        registered_at=user.registered_at
    )


def _list(request: Request, query, model, serializer, order_by):
    try:
        query = apply_filters(query, model, parse_filters(request.query_params))
    except FilterError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    page, page_size = parse_pagination(request.query_params)
    rows, meta = paginate(query.order_by(*order_by), page, page_size)
    return {"data": [serializer(r) for r in rows], "meta": meta}


# ===========================
# DISTRICTS
# ===========================

@districtRouter.get("/districts", response_model=CollectionResponse[DistrictOut])
async def list_districts(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return _list(request, db.query(District), District, district_out, (District.name, District.id))


@districtRouter.get("/districts/{document_id}", response_model=EntityResponse[DistrictOut])
async def get_district(
    document_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return {"data": district_out(get_by_document_id(db, District, document_id, "District"))}


@districtRouter.post("/districts", response_model=EntityResponse[DistrictOut], status_code=status.HTTP_201_CREATED)
async def create_district(
    payload: WriteRequest[DistrictCreate],
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    require_role(current_user)
    body = payload.data
    name = body.name.strip()
    if db.query(District).filter(func.lower(District.name) == name.lower()).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="This attribute must be unique")

    coordinator = None
    coordinator_id = extract_document_id(body.coordinator)
    if coordinator_id:
        coordinator = get_by_document_id(db, User, coordinator_id, "User")

    district = District(name=name, code=body.code, coordinator_id=coordinator.id if coordinator else None)
    db.add(district)
    db.flush()
    create_audit_log(db, current_user.id, "CREATE", "district", resource_id=district.document_id,
                     resource_name=district.name, request=request)
    db.commit()
    db.refresh(district)
    return {"data": district_out(district)}


# ===========================
# COORDINATORS
# ===========================

def _assignment(db: Session, current_user: User, body: CoordinatorCreate):
    """Resolve and authorise the district or assembly the new coordinator will run."""
    district_id = extract_document_id(body.district)
    assembly_id = extract_document_id(body.assembly)
    if not district_id and not assembly_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail="A district or an assembly is required")

    district = get_by_document_id(db, District, district_id, "District") if district_id else None
    assembly = get_by_document_id(db, Assembly, assembly_id, "Assembly") if assembly_id else None

    if assembly is None:
        if not is_admin(current_user):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN,
                                detail="Only admins appoint district coordinators")
        if district.coordinator_id is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT,
                                detail=f"District '{district.name}' already has a coordinator")
        return district, None

    if district is not None and assembly.district_id != district.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail="Assembly does not belong to the selected district")
    if not is_admin(current_user):
        parent = assembly.district
        if parent is None or parent.coordinator_id != current_user.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN,
                                detail="Assembly is outside your district")
    if assembly.coordinator_id is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT,
                            detail=f"Assembly '{assembly.assembly_no}' already has a coordinator")
    return None, assembly


@districtRouter.post("/coordinators", response_model=CoordinatorOut, status_code=status.HTTP_201_CREATED)
async def create_coordinator(
    body: CoordinatorCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a coordinator account and assign it to a district or an assembly."""
    require_role(current_user, COORDINATOR_ROLE)
    district, assembly = _assignment(db, current_user, body)

    user = create_account(db, body.username, body.email, body.password, COORDINATOR_ROLE,
                          full_name=body.full_name, phone_number=body.phone_number)
    if district is not None:
        district.coordinator_id = user.id
        scope = f"district {district.name}"
    else:
        assembly.coordinator_id = user.id
        scope = f"assembly {assembly.assembly_no}"

    create_audit_log(db, current_user.id, "CREATE", "coordinator", resource_id=user.document_id,
                     resource_name=user.username, details=scope, request=request)
    db.commit()
    db.refresh(user)

    logger.info(f"Coordinator '{user.username}' appointed to {scope} by user {current_user.id}")
    return coordinator_out(db, user)


@districtRouter.get("/coordinators", response_model=CollectionResponse[CoordinatorOut])
async def list_coordinators(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    require_role(current_user, COORDINATOR_ROLE)
    query = db.query(User).join(Role, User.role_id == Role.id).filter(Role.name == COORDINATOR_ROLE)
    return _list(request, query, User, lambda u: coordinator_out(db, u), (User.username,))


# ===========================
# DASHBOARD
# ===========================

def _grouped(query) -> Dict[str, int]:
    return {key: count for key, count in query.all()}


@districtRouter.get("/dashboard/summary", response_model=DashboardSummary)
async def dashboard_summary(
    district: Optional[str] = Query(None, description="District documentId"),
    division: Optional[str] = Query(None, description="Division documentId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Rollout counts for the dashboard cards."""
    district_row = get_by_document_id(db, District, district, "District") if district else None

    assemblies = db.query(func.count(Assembly.id))
    locations = db.query(func.count(Location.id)).join(Assembly, Location.assembly_id == Assembly.id)
    surveys = db.query(func.count(Survey.id)).join(Location, Survey.location_id == Location.id) \
        .join(Assembly, Location.assembly_id == Assembly.id)
    dispatches = db.query(Dispatch.state, func.count(Dispatch.id)).group_by(Dispatch.state)
    if district_row is not None:
        assemblies = assemblies.filter(Assembly.district_id == district_row.id)
        locations = locations.filter(Assembly.district_id == district_row.id)
        surveys = surveys.filter(Assembly.district_id == district_row.id)
        dispatches = dispatches.filter(Dispatch.from_district_id == district_row.id)

    boqs = visible_boqs(db, current_user)
    if division:
        division_row = get_by_document_id(db, Division, division, "Division")
        boqs = boqs.filter(BOQ.division_id == division_row.id)
    visible = boqs.with_entities(BOQ.id).subquery()
    boq_ids = select(visible.c.id)

    boqs_by_state = _grouped(
        db.query(BOQ.state, func.count(BOQ.id)).filter(BOQ.id.in_(boq_ids)).group_by(BOQ.state)
    )

    requested, installed = db.query(
        func.coalesce(func.sum(BOQItem.qty), 0),
        func.coalesce(func.sum(BOQItem.installed_count), 0)
    ).join(BOQ, BOQItem.boq_id == BOQ.id).filter(
        BOQ.id.in_(boq_ids),
        BOQ.state.in_(INSTALLING_STATES)
    ).one()

    installations_by_state = _grouped(
        db.query(InstalledProduct.state, func.count(InstalledProduct.id))
        .filter(InstalledProduct.boq_id.in_(boq_ids))
        .group_by(InstalledProduct.state)
    )

    return DashboardSummary(
        district=relation_ref(district_row),
        assemblies=assemblies.scalar() or 0,
        locations=locations.scalar() or 0,
        surveys=surveys.scalar() or 0,
        boqs=sum(boqs_by_state.values()),
        boqs_by_state=boqs_by_state,
        installations=InstallationTotals(
            requested=int(requested),
            installed=int(installed),
            remaining=max(int(requested) - int(installed), 0),
            by_state=installations_by_state,
        ),
        dispatches_by_state=_grouped(dispatches),
    )
