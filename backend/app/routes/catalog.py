"""
IoT Tech Backend — Catalog Route Handlers
===========================================

What:  Read-only endpoints for devices, slides, and service descriptions.
How:   Thin wrappers over CatalogService; unknown device ids and types raise
       NotFoundError, formatted as 404 by the global handler.

Route Inventory:
    GET /api/devices                  all devices
    GET /api/devices/{id}             one device
    GET /api/devices/type/{type}      devices of a type (case-insensitive)
    GET /api/status/{status}          devices in a status (may be empty)
    GET /api/slides                   slideshow entries
    GET /api/services                 service descriptions
"""

from typing import List

from fastapi import APIRouter

from app.schemas.case_study import ErrorResponse
from app.schemas.catalog import Device, ServiceOffering, Slide
from app.services.catalog_service import catalog_service

router = APIRouter(prefix="/api", tags=["Catalog"])


@router.get("/devices", response_model=List[Device], summary="List all devices")
async def list_devices() -> List[dict]:
    return catalog_service.list_devices()


@router.get(
    "/devices/type/{device_type}",
    response_model=List[Device],
    responses={404: {"description": "No devices of this type", "model": ErrorResponse}},
    summary="List devices of one type",
)
async def devices_by_type(device_type: str) -> List[dict]:
    return catalog_service.devices_by_type(device_type)


@router.get(
    "/devices/{device_id}",
    response_model=Device,
    responses={404: {"description": "Device not found", "model": ErrorResponse}},
    summary="Get a device by id",
)
async def get_device(device_id: str) -> dict:
    return catalog_service.get_device(device_id)


@router.get("/status/{status}", response_model=List[Device], summary="List devices by status")
async def devices_by_status(status: str) -> List[dict]:
    return catalog_service.devices_by_status(status)


@router.get("/slides", response_model=List[Slide], summary="List slideshow entries")
async def list_slides() -> List[dict]:
    return catalog_service.list_slides()


@router.get("/services", response_model=List[ServiceOffering], summary="List offered services")
async def list_services() -> List[dict]:
    return catalog_service.list_services()
