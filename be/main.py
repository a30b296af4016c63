"""
Main FastAPI Application Entry Point

Application file for the CCTV bus-station rollout BOQ service. It sets up
the FastAPI application, configures middleware, creates the tables and
registers all API routes.

Domains served:
1. Reference data - site hierarchy (division / depot / bus station / bus stand)
   and the per-category product catalog
2. BOQ - raising, listing, pricing and approving Bills of Quantities
3. Installations - serial-numbered units recorded against approved BOQs
4. Locations - polling-station locations and field surveys

Configuration (environment / .env):
- DATABASE_URL, SQL_ECHO: see Database.session
- SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES: see APIs.Core
- CORS_ORIGINS: comma separated list of allowed frontend origins
- UPLOAD_DIR: where /upload stores files
- LOG_LEVEL: root logging level (default INFO)
"""

import os
import logging

from dotenv import load_dotenv

load_dotenv()

# Configure logging to show INFO level messages
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    handlers=[
        logging.StreamHandler(),  # Console output
    ]
)

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

# Admin API imports
from APIs.Admin.AdminRoute import adminRoute
from APIs.Admin.UserRoute import userRoute

# BOQ API imports
from APIs.BOQ.ApprovalRoute import router as approval_router
from APIs.BOQ.BOQRoute import boqRouter
from APIs.BOQ.DispatchRoute import dispatchRouter
from APIs.BOQ.DistrictRoute import districtRouter
from APIs.BOQ.InstallationRoute import installationRouter
from APIs.BOQ.LocationRoute import locationRouter
from APIs.BOQ.ReferenceRoute import referenceRouter
from APIs.BOQ.UploadRoute import UPLOAD_DIR, uploadRouter

# Import every model so SQLAlchemy knows all tables before create_all
from Models.Admin.User import User, Role
from Models.Admin.AuditLog import AuditLog
from Models.BOQ.Hierarchy import Division, Depot, BusStation, BusStand
from Models.BOQ.Product import Product
from Models.BOQ.BillOfQuantities import BOQ, BOQItem
from Models.BOQ.InstalledProduct import InstalledProduct
from Models.BOQ.Location import District, Assembly, Location, Survey
from Models.BOQ.Dispatch import Dispatch
from Models.BOQ.UploadedFile import UploadedFile

# Database configuration
from Database.session import engine, Base

logger = logging.getLogger(__name__)

# Initialize FastAPI application
app = FastAPI(
    title="CCTV Rollout BOQ Service",
    description="Bills of Quantities, approvals and installation tracking for bus-station CCTV rollout",
    version="1.0.0"
)

# Create all database tables on startup
Base.metadata.create_all(bind=engine)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers
app.include_router(userRoute)           # Login, current user, registration
app.include_router(adminRoute)          # Audit log

app.include_router(referenceRouter)     # Site hierarchy and product catalog
app.include_router(boqRouter)           # BOQ create / list / reconcile / import
app.include_router(approval_router)     # BOQ lifecycle transitions
app.include_router(installationRouter)  # Installed products
app.include_router(locationRouter)      # Assemblies, locations, surveys
app.include_router(districtRouter)      # Districts, coordinators, dashboard summary
app.include_router(dispatchRouter)      # Material dispatches
app.include_router(uploadRouter)        # Photo / document uploads

app.mount("/uploads", StaticFiles(directory=str(UPLOAD_DIR), check_dir=False), name="uploads")

logger.info(f"Application ready; CORS origins: {', '.join(CORS_ORIGINS)}")

# Application entry point
if __name__ == "__main__":
    uvicorn.run(app, host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "8003")))
