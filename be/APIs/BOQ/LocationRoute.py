"""
Polling-station Location & Survey API Routes

Assemblies, their polling-station locations and the field surveys recorded
against them. Locations can be bulk-loaded from the district CSV sheets via
/locations/import; duplicates (same assembly and PS number, already stored or
repeated in the sheet) are reported back instead of inserted.
"""

import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from APIs.Core import extract_document_id, get_by_document_id, get_current_user, get_db
from Models.Admin.User import User
from Models.BOQ.Location import Assembly, District, Location, Survey
from Schemas.Admin.UserSchema import user_ref
from Schemas.BOQ.CommonSchema import CollectionResponse, EntityResponse, WriteRequest, relation_ref
from Schemas.BOQ.LocationSchema import (
    AssemblyCreate,
    AssemblyOut,
    LocationCreate,
    LocationImportResult,
    LocationOut,
    SurveyCreate,
    SurveyOut,
)
from utils.access_control import create_audit_log, require_role
from utils.coordinates import normalize_coordinate
from utils.deduplication import dedupe_rows, location_key
from utils.file_validation import read_csv_rows, validate_csv_file
from utils.query_filters import FilterError, apply_filters, paginate, parse_filters, parse_pagination

logger = logging.getLogger(__name__)

locationRouter = APIRouter(tags=["Locations"])

REQUIRED_COLUMNS = ("LAC No.", "PS No.", "PS Name")


def assembly_out(row: Assembly) -> AssemblyOut:
    return AssemblyOut(
        id=row.id, document_id=row.document_id, assembly_no=row.assembly_no, name=row.name,
        district=relation_ref(row.district), coordinator=user_ref(row.coordinator)
    )


def location_out(row: Location) -> LocationOut:
    return LocationOut(
        id=row.id, document_id=row.document_id, ps_no=row.ps_no, ps_name=row.ps_name,
        ps_location=row.ps_location, latitude=row.latitude, longitude=row.longitude,
        assembly=relation_ref(row.assembly, name_attr="assembly_no")
    )


def survey_out(row: Survey) -> SurveyOut:
    return SurveyOut(
        id=row.id, document_id=row.document_id,
        location=relation_ref(row.location, name_attr="ps_name"),
        latitude=row.latitude, longitude=row.longitude,
        power_available=row.power_available, network_available=row.network_available,
        airtel_signal=row.airtel_signal or 0, jio_signal=row.jio_signal or 0,
        site_condition=row.site_condition, work_status=row.work_status,
        remarks=row.remarks, photos=row.photos or [],
        surveyed_by=user_ref(row.surveyed_by), survey_date=row.survey_date
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
# ASSEMBLIES
# ===========================

@locationRouter.get("/assemblies", response_model=CollectionResponse[AssemblyOut])
async def list_assemblies(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return _list(request, db.query(Assembly), Assembly, assembly_out, (Assembly.assembly_no,))


@locationRouter.post("/assemblies", response_model=EntityResponse[AssemblyOut], status_code=status.HTTP_201_CREATED)
async def create_assembly(
    payload: WriteRequest[AssemblyCreate],
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    require_role(current_user, "surveyor", "coordinator")
    body = payload.data
    if db.query(Assembly).filter(Assembly.assembly_no == body.assembly_no).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="This attribute must be unique")

    district = None
    district_id = extract_document_id(body.district)
    if district_id:
        district = get_by_document_id(db, District, district_id, "District")

    assembly = Assembly(assembly_no=body.assembly_no, name=body.name,
                        district_id=district.id if district else None)
    db.add(assembly)
    db.commit()
    db.refresh(assembly)
    return {"data": assembly_out(assembly)}


# ===========================
# LOCATIONS
# ===========================

@locationRouter.get("/locations", response_model=CollectionResponse[LocationOut])
async def list_locations(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return _list(request, db.query(Location), Location, location_out, (Location.assembly_id, Location.id))


@locationRouter.get("/locations/{document_id}", response_model=EntityResponse[LocationOut])
async def get_location(
    document_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return {"data": location_out(get_by_document_id(db, Location, document_id, "Location"))}


@locationRouter.post("/locations", response_model=EntityResponse[LocationOut], status_code=status.HTTP_201_CREATED)
async def create_location(
    payload: WriteRequest[LocationCreate],
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    require_role(current_user, "surveyor", "coordinator")
    body = payload.data

    assembly = None
    assembly_id = extract_document_id(body.assembly)
    if assembly_id:
        assembly = get_by_document_id(db, Assembly, assembly_id, "Assembly")

    location = Location(
        ps_no=body.ps_no,
        ps_name=body.ps_name,
        ps_location=body.ps_location,
        latitude=normalize_coordinate(body.latitude),
        longitude=normalize_coordinate(body.longitude),
        assembly_id=assembly.id if assembly else None,
    )
    db.add(location)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Duplicate PS_No")
    db.refresh(location)
    return {"data": location_out(location)}


@locationRouter.post("/locations/import", response_model=LocationImportResult)
async def import_locations(
    request: Request,
    file: UploadFile = File(..., description="CSV with LAC No., PS No., PS Name, PS Location (village), Latitude, Longitude"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Bulk-load polling-station locations.

    Rows without LAC No., PS No. or PS Name are ignored. Rows naming an
    unknown assembly are skipped with "Assembly not found"; rows whose
    (assembly, PS No.) already exists, in the database or earlier in the
    sheet, are skipped with "Duplicate PS_No".
    """
    require_role(current_user, "surveyor", "coordinator")
    await validate_csv_file(file)
    rows = read_csv_rows(await file.read())

    candidates = [r for r in rows if all(r.get(col) for col in REQUIRED_COLUMNS)]
    logger.info(f"Location import: {len(rows)} rows read, {len(candidates)} with required fields")

    assemblies: Dict[str, Assembly] = {a.assembly_no.strip().lower(): a for a in db.query(Assembly).all()}

    def _assembly_problem(row) -> Optional[str]:
        if row["LAC No."].strip().lower() not in assemblies:
            return "Assembly not found"
        return None

    existing_keys = [
        location_key(assembly_no, ps_no)
        for ps_no, assembly_no in db.query(Location.ps_no, Assembly.assembly_no)
        .join(Assembly, Location.assembly_id == Assembly.id).all()
    ]
    result = dedupe_rows(
        existing_keys,
        candidates,
        key_fn=lambda r: location_key(r["LAC No."], r["PS No."]),
        reason="Duplicate PS_No",
        validate=_assembly_problem,
    )

    try:
        for row in result.accepted:
            db.add(Location(
                ps_no=row["PS No."],
                ps_name=row["PS Name"],
                ps_location=row.get("PS Location (village)") or None,
                latitude=normalize_coordinate(row.get("Latitude")),
                longitude=normalize_coordinate(row.get("Longitude")),
                assembly_id=assemblies[row["LAC No."].strip().lower()].id,
            ))
        create_audit_log(db, current_user.id, "IMPORT", "location", resource_name=file.filename,
                         details=f"uploaded={len(result.accepted)} skipped={len(result.skipped)}",
                         request=request)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Location import failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error importing locations: {str(e)}"
        )

    logger.info(f"Location import by user {current_user.id}: {len(result.accepted)} uploaded, "
                f"{len(result.skipped)} skipped")
    return LocationImportResult(uploaded=len(result.accepted), skipped=result.skipped)


# ===========================
# SURVEYS
# ===========================

@locationRouter.get("/surveys", response_model=CollectionResponse[SurveyOut])
async def list_surveys(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return _list(request, db.query(Survey), Survey, survey_out, (Survey.survey_date.desc(), Survey.id.desc()))


@locationRouter.post("/surveys", response_model=EntityResponse[SurveyOut], status_code=status.HTTP_201_CREATED)
async def create_survey(
    payload: WriteRequest[SurveyCreate],
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    require_role(current_user, "surveyor")
    body = payload.data

    location_id = extract_document_id(body.location)
    if not location_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A location reference is required")
    location = get_by_document_id(db, Location, location_id, "Location")

    survey = Survey(
        location_id=location.id,
        latitude=normalize_coordinate(body.latitude),
        longitude=normalize_coordinate(body.longitude),
        power_available=body.power_available,
        network_available=body.network_available,
        airtel_signal=body.airtel_signal,
        jio_signal=body.jio_signal,
        site_condition=body.site_condition,
        work_status=body.work_status,
        remarks=body.remarks,
        photos=body.photos,
        surveyed_by_id=current_user.id,
    )
    db.add(survey)
    db.commit()
    db.refresh(survey)

    logger.info(f"Survey {survey.document_id} recorded for location {location.document_id} by user {current_user.id}")
    return {"data": survey_out(survey)}
