"""
Reference Data API Routes

Serves the flat reference collections the BOQ builder loads:

- the site hierarchy: /divisions, /depots, /bus-stations, /bus-stands
- the product catalog, one collection per category: /nvrs, /cameras, ...

Every collection answers paginated GETs with bracketed filters (see
utils.query_filters) in the ``{"data", "meta"}`` envelope, and accepts
``{"data": {...}}`` writes. Catalog price edits go through PUT and are
picked up immediately by every BOQ still pending.

/bus-stands/import bulk-creates the hierarchy from a CSV, row by row.
"""

import logging
from typing import Callable, Dict, List

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from sqlalchemy.orm import Session

from APIs.Core import extract_document_id, get_by_document_id, get_current_user, get_db
from Models.Admin.User import User
from Models.BOQ.Hierarchy import BusStand, BusStation, Depot, Division
from Models.BOQ.Product import Product
from Schemas.BOQ.CommonSchema import CollectionResponse, EntityResponse, WriteRequest, relation_ref
from Schemas.BOQ.LocationSchema import HierarchyImportResult
from Schemas.BOQ.ReferenceSchema import (
    BusStandCreate,
    BusStandOut,
    BusStationCreate,
    BusStationOut,
    DepotCreate,
    DepotOut,
    DivisionCreate,
    DivisionOut,
    ProductCreate,
    ProductOut,
    ProductUpdate,
)
from utils.access_control import create_audit_log, require_role
from utils.coordinates import normalize_coordinate
from utils.file_validation import read_csv_rows, validate_csv_file
from utils.product_categories import PRODUCT_CATEGORIES, ProductCategory
from utils.query_filters import FilterError, apply_filters, paginate, parse_filters, parse_pagination

logger = logging.getLogger(__name__)

referenceRouter = APIRouter(tags=["Reference Data"])

REFERENCE_EDITOR_ROLES = ("purchase",)


# ===========================
# SERIALIZERS
# ===========================

def division_out(row: Division) -> DivisionOut:
    return DivisionOut(id=row.id, document_id=row.document_id, name=row.name, code=row.code)


def depot_out(row: Depot) -> DepotOut:
    return DepotOut(
        id=row.id, document_id=row.document_id, name=row.name, code=row.code,
        address=row.address, state=row.state, division=relation_ref(row.division)
    )


def bus_station_out(row: BusStation) -> BusStationOut:
    return BusStationOut(
        id=row.id, document_id=row.document_id, name=row.name, address=row.address,
        latitude=row.latitude, longitude=row.longitude,
        division=relation_ref(row.division), depot=relation_ref(row.depot)
    )


def bus_stand_out(row: BusStand) -> BusStandOut:
    return BusStandOut(
        id=row.id, document_id=row.document_id, name=row.name,
        platform_number=row.platform_number, division=relation_ref(row.division),
        depot=relation_ref(row.depot), bus_station=relation_ref(row.bus_station)
    )


def product_out(row: Product) -> ProductOut:
    return ProductOut(
        id=row.id, document_id=row.document_id, name=row.name, category=row.category,
        price=row.price or 0, currency=row.currency, updated_at=row.updated_at
    )


def list_collection(request: Request, db: Session, query, model, serializer: Callable) -> dict:
    """Filter, paginate and wrap a collection query in the response envelope."""
    try:
        clauses = parse_filters(request.query_params)
        query = apply_filters(query, model, clauses)
    except FilterError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    page, page_size = parse_pagination(request.query_params)
    rows, meta = paginate(query.order_by(model.name, model.id), page, page_size)
    return {"data": [serializer(row) for row in rows], "meta": meta}


# ===========================
# SITE HIERARCHY
# ===========================

@referenceRouter.get("/divisions", response_model=CollectionResponse[DivisionOut])
async def list_divisions(request: Request, db: Session = Depends(get_db),
                         current_user: User = Depends(get_current_user)):
    return list_collection(request, db, db.query(Division), Division, division_out)


@referenceRouter.get("/divisions/{document_id}", response_model=EntityResponse[DivisionOut])
async def get_division(document_id: str, db: Session = Depends(get_db),
                       current_user: User = Depends(get_current_user)):
    return {"data": division_out(get_by_document_id(db, Division, document_id, "Division"))}


@referenceRouter.post("/divisions", response_model=EntityResponse[DivisionOut], status_code=status.HTTP_201_CREATED)
async def create_division(payload: WriteRequest[DivisionCreate], db: Session = Depends(get_db),
                          current_user: User = Depends(get_current_user)):
    require_role(current_user, *REFERENCE_EDITOR_ROLES)
    body = payload.data
    if db.query(Division).filter(Division.name == body.name.strip()).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Division '{body.name}' already exists")

    division = Division(name=body.name.strip(), code=body.code)
    db.add(division)
    db.commit()
    db.refresh(division)
    logger.info(f"Division {division.document_id} created by user {current_user.id}")
    return {"data": division_out(division)}


@referenceRouter.get("/depots", response_model=CollectionResponse[DepotOut])
async def list_depots(request: Request, db: Session = Depends(get_db),
                      current_user: User = Depends(get_current_user)):
    return list_collection(request, db, db.query(Depot), Depot, depot_out)


@referenceRouter.get("/depots/{document_id}", response_model=EntityResponse[DepotOut])
async def get_depot(document_id: str, db: Session = Depends(get_db),
                    current_user: User = Depends(get_current_user)):
    return {"data": depot_out(get_by_document_id(db, Depot, document_id, "Depot"))}


@referenceRouter.post("/depots", response_model=EntityResponse[DepotOut], status_code=status.HTTP_201_CREATED)
async def create_depot(payload: WriteRequest[DepotCreate], db: Session = Depends(get_db),
                       current_user: User = Depends(get_current_user)):
    require_role(current_user, *REFERENCE_EDITOR_ROLES)
    body = payload.data
    division = get_by_document_id(db, Division, extract_document_id(body.division) or "", "Division")

    depot = Depot(name=body.name.strip(), code=body.code, address=body.address,
                  state=body.state, division_id=division.id)
    db.add(depot)
    db.commit()
    db.refresh(depot)
    return {"data": depot_out(depot)}


@referenceRouter.get("/bus-stations", response_model=CollectionResponse[BusStationOut])
async def list_bus_stations(request: Request, db: Session = Depends(get_db),
                            current_user: User = Depends(get_current_user)):
    return list_collection(request, db, db.query(BusStation), BusStation, bus_station_out)


@referenceRouter.get("/bus-stations/{document_id}", response_model=EntityResponse[BusStationOut])
async def get_bus_station(document_id: str, db: Session = Depends(get_db),
                          current_user: User = Depends(get_current_user)):
    return {"data": bus_station_out(get_by_document_id(db, BusStation, document_id, "Bus station"))}


@referenceRouter.post("/bus-stations", response_model=EntityResponse[BusStationOut], status_code=status.HTTP_201_CREATED)
async def create_bus_station(payload: WriteRequest[BusStationCreate], db: Session = Depends(get_db),
                             current_user: User = Depends(get_current_user)):
    require_role(current_user, *REFERENCE_EDITOR_ROLES)
    body = payload.data
    depot = get_by_document_id(db, Depot, extract_document_id(body.depot) or "", "Depot")

    station = BusStation(
        name=body.name.strip(), address=body.address,
        latitude=normalize_coordinate(body.latitude), longitude=normalize_coordinate(body.longitude),
        division_id=depot.division_id, depot_id=depot.id
    )
    db.add(station)
    db.commit()
    db.refresh(station)
    return {"data": bus_station_out(station)}


@referenceRouter.get("/bus-stands", response_model=CollectionResponse[BusStandOut])
async def list_bus_stands(request: Request, db: Session = Depends(get_db),
                          current_user: User = Depends(get_current_user)):
    return list_collection(request, db, db.query(BusStand), BusStand, bus_stand_out)


@referenceRouter.post("/bus-stands/import", response_model=HierarchyImportResult)
async def import_bus_stands(
    request: Request,
    file: UploadFile = File(..., description="CSV with division, depot, busStation, busStand columns"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Bulk-create the site hierarchy from a CSV.

    Each row is committed on its own: a failing row is rolled back and logged
    and the import moves on. Rows already imported stay in place.
    """
    require_role(current_user, *REFERENCE_EDITOR_ROLES)
    await validate_csv_file(file)
    rows = read_csv_rows(await file.read())

    created = {"divisions": 0, "depots": 0, "bus_stations": 0, "bus_stands": 0}
    skipped: List[str] = []
    errors: List[str] = []

    for row_num, row in enumerate(rows, start=2):  # 1 is the header
        names = [row.get(k) for k in ("division", "depot", "busStation", "busStand")]
        if not all(names):
            skipped.append(f"Row {row_num} skipped: Missing division/depot/station/busstand")
            continue
        division_name, depot_name, station_name, stand_name = names

        try:
            division = db.query(Division).filter(Division.name == division_name).first()
            if division is None:
                division = Division(name=division_name)
                db.add(division)
                db.flush()
                created["divisions"] += 1

            depot = db.query(Depot).filter(
                Depot.name == depot_name, Depot.division_id == division.id
            ).first()
            if depot is None:
                depot = Depot(name=depot_name, division_id=division.id, code=depot_name[:5].upper(),
                              address=row.get("Address") or None, state="inactive")
                db.add(depot)
                db.flush()
                created["depots"] += 1

            station = db.query(BusStation).filter(
                BusStation.name == station_name, BusStation.depot_id == depot.id
            ).first()
            if station is None:
                station = BusStation(
                    name=station_name, division_id=division.id, depot_id=depot.id,
                    address=row.get("Address") or None,
                    latitude=normalize_coordinate(row.get("Latitude")),
                    longitude=normalize_coordinate(row.get("Longitude"))
                )
                db.add(station)
                db.flush()
                created["bus_stations"] += 1

            existing_stand = db.query(BusStand).filter(
                BusStand.bus_station_id == station.id,
                BusStand.name.ilike(f"%{stand_name}%")
            ).first()
            if existing_stand is not None:
                skipped.append(f"Skipped existing Bus Stand: {stand_name} under {depot_name} / {station_name}")
            else:
                db.add(BusStand(
                    name=f"{stand_name} ({depot_name} - {station_name})",
                    division_id=division.id, depot_id=depot.id, bus_station_id=station.id
                ))
                created["bus_stands"] += 1

            db.commit()
        except Exception as e:
            db.rollback()
            errors.append(f"Row {row_num}: {division_name} -> {depot_name} -> {station_name} -> {stand_name}: {e}")
            logger.error(f"Hierarchy import row {row_num} failed: {e}")

    create_audit_log(db, current_user.id, "IMPORT", "bus_stand",
                     resource_name=file.filename,
                     details=f"created={created} skipped={len(skipped)} errors={len(errors)}",
                     request=request)
    db.commit()
    logger.info(f"Hierarchy import by user {current_user.id}: {created}, {len(errors)} errors")

    return HierarchyImportResult(rows=len(rows), created=created, skipped=skipped, errors=errors)


@referenceRouter.get("/bus-stands/{document_id}", response_model=EntityResponse[BusStandOut])
async def get_bus_stand(document_id: str, db: Session = Depends(get_db),
                        current_user: User = Depends(get_current_user)):
    return {"data": bus_stand_out(get_by_document_id(db, BusStand, document_id, "Bus stand"))}


@referenceRouter.post("/bus-stands", response_model=EntityResponse[BusStandOut], status_code=status.HTTP_201_CREATED)
async def create_bus_stand(payload: WriteRequest[BusStandCreate], db: Session = Depends(get_db),
                           current_user: User = Depends(get_current_user)):
    require_role(current_user, *REFERENCE_EDITOR_ROLES)
    body = payload.data
    station = get_by_document_id(db, BusStation, extract_document_id(body.bus_station) or "", "Bus station")
    if db.query(BusStand).filter(BusStand.name == body.name.strip()).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="This attribute must be unique")

    stand = BusStand(
        name=body.name.strip(), platform_number=body.platform_number,
        division_id=station.division_id, depot_id=station.depot_id, bus_station_id=station.id
    )
    db.add(stand)
    db.commit()
    db.refresh(stand)
    return {"data": bus_stand_out(stand)}


# ===========================
# PRODUCT CATALOG
# ===========================

def _catalog_routes(category: ProductCategory) -> Dict[str, Callable]:
    """Build the handlers serving one catalog category."""

    async def list_products(request: Request, db: Session = Depends(get_db),
                            current_user: User = Depends(get_current_user)):
        query = db.query(Product).filter(Product.category == category.category)
        return list_collection(request, db, query, Product, product_out)

    async def get_product(document_id: str, db: Session = Depends(get_db),
                          current_user: User = Depends(get_current_user)):
        product = get_by_document_id(db, Product, document_id, category.label)
        if product.category != category.category:
            raise HTTPException(status_code=404, detail=f"{category.label} '{document_id}' not found")
        return {"data": product_out(product)}

    async def create_product(payload: WriteRequest[ProductCreate], db: Session = Depends(get_db),
                             current_user: User = Depends(get_current_user)):
        require_role(current_user, *REFERENCE_EDITOR_ROLES)
        body = payload.data
        exists = db.query(Product).filter(
            Product.category == category.category, Product.name == body.name.strip()
        ).first()
        if exists:
            raise HTTPException(status_code=409, detail=f"{category.label} '{body.name}' already exists")

        product = Product(category=category.category, name=body.name.strip(),
                          price=body.price, currency=body.currency)
        db.add(product)
        db.commit()
        db.refresh(product)
        return {"data": product_out(product)}

    async def update_product(document_id: str, payload: WriteRequest[ProductUpdate], request: Request,
                             db: Session = Depends(get_db),
                             current_user: User = Depends(get_current_user)):
        require_role(current_user, *REFERENCE_EDITOR_ROLES)
        product = get_by_document_id(db, Product, document_id, category.label)
        if product.category != category.category:
            raise HTTPException(status_code=404, detail=f"{category.label} '{document_id}' not found")

        changes = payload.data.model_dump(exclude_unset=True)
        old_price = product.price
        for field, value in changes.items():
            setattr(product, field, value.strip() if isinstance(value, str) else value)

        if "price" in changes and changes["price"] != old_price:
            create_audit_log(db, current_user.id, "UPDATE_PRICE", "product",
                             resource_id=product.document_id, resource_name=product.name,
                             details=f"{old_price} -> {product.price}", request=request)
            logger.info(f"{category.label} '{product.name}' price {old_price} -> {product.price} by user {current_user.id}")

        db.commit()
        db.refresh(product)
        return {"data": product_out(product)}

    return {
        "list": list_products,
        "get": get_product,
        "create": create_product,
        "update": update_product,
    }


for _category in PRODUCT_CATEGORIES:
    _handlers = _catalog_routes(_category)
    _path = f"/{_category.collection}"
    referenceRouter.add_api_route(
        _path, _handlers["list"], methods=["GET"],
        response_model=CollectionResponse[ProductOut], name=f"list_{_category.category}"
    )
    referenceRouter.add_api_route(
        _path + "/{document_id}", _handlers["get"], methods=["GET"],
        response_model=EntityResponse[ProductOut], name=f"get_{_category.category}"
    )
    referenceRouter.add_api_route(
        _path, _handlers["create"], methods=["POST"], status_code=status.HTTP_201_CREATED,
        response_model=EntityResponse[ProductOut], name=f"create_{_category.category}"
    )
    referenceRouter.add_api_route(
        _path + "/{document_id}", _handlers["update"], methods=["PUT"],
        response_model=EntityResponse[ProductOut], name=f"update_{_category.category}"
    )
