"""
IoT Tech Backend — Catalog Service
====================================

What:  Static device, slideshow, and service data with the lookups the
       catalog routes need.
Who:   Called by app/routes/catalog.py.

The data is fixed at import time and never written; every method returns
copies so callers cannot mutate the shared lists.
"""

import copy
from typing import Any, Dict, List, Union

from app.exceptions import NotFoundError

DEVICES: List[Dict[str, Any]] = [
    {
        "id": 1,
        "name": "Smart Thermostat",
        "type": "Temperature Control",
        "status": "online",
        "temperature": 72,
        "humidity": 45,
        "location": "Living Room",
        "image": "/images/thermostat.jpg",
    },
    {
        "id": 2,
        "name": "Smart Light",
        "type": "Lighting",
        "status": "online",
        "brightness": 80,
        "color": "warm",
        "location": "Bedroom",
        "image": "/images/light.jpg",
    },
    {
        "id": 3,
        "name": "Smart Door Lock",
        "type": "Security",
        "status": "online",
        "locked": True,
        "lastAccess": "2025-11-11 10:30 AM",
        "location": "Front Door",
        "image": "/images/lock.jpg",
    },
    {
        "id": 4,
        "name": "Smart Camera",
        "type": "Security",
        "status": "online",
        "recording": True,
        "resolution": "1080p",
        "location": "Garage",
        "image": "/images/camera.jpg",
    },
    {
        "id": 5,
        "name": "Smart Plug",
        "type": "Power Control",
        "status": "online",
        "powerUsage": 45,
        "unit": "watts",
        "location": "Kitchen",
        "image": "/images/plug.jpg",
    },
    {
        "id": 6,
        "name": "Motion Sensor",
        "type": "Detection",
        "status": "online",
        "motionDetected": False,
        "sensitivity": "high",
        "location": "Hallway",
        "image": "/images/sensor.jpg",
    },
]

SLIDES: List[Dict[str, Any]] = [
    {
        "id": 1,
        "title": "Connected Living",
        "caption": "Control lighting, climate, and security from one dashboard.",
        "image": "/images/slides/connected-living.jpg",
    },
    {
        "id": 2,
        "title": "Energy Insight",
        "caption": "Track per-device power usage and cut waste automatically.",
        "image": "/images/slides/energy-insight.jpg",
    },
    {
        "id": 3,
        "title": "Secure by Default",
        "caption": "Locks, cameras, and motion sensors that report in real time.",
        "image": "/images/slides/secure-by-default.jpg",
    },
]

SERVICES: List[Dict[str, Any]] = [
    {
        "id": 1,
        "name": "Smart Home Installation",
        "description": "On-site setup and pairing of thermostats, lights, locks, and cameras.",
        "icon": "home",
    },
    {
        "id": 2,
        "name": "Industrial Sensor Networks",
        "description": "Design and rollout of sensor fleets for plants and warehouses.",
        "icon": "factory",
    },
    {
        "id": 3,
        "name": "Monitoring & Support",
        "description": "Device health monitoring, firmware updates, and on-call support.",
        "icon": "support",
    },
]


class CatalogService:
    """Read-only queries over the static catalog."""

    def __init__(self, devices=None, slides=None, services=None):
        self._devices = devices if devices is not None else DEVICES
        self._slides = slides if slides is not None else SLIDES
        self._services = services if services is not None else SERVICES

    def list_devices(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._devices)

    def get_device(self, device_id: Union[int, str]) -> Dict[str, Any]:
        """
        Look up a device by its numeric id, given as an int or a path segment.

        Raises:
            NotFoundError: no device has this id, or the id is not an integer (→ 404)
        """
        missing = NotFoundError(
            resource="device", resource_id=str(device_id), message="Device not found"
        )
        try:
            wanted = int(device_id)
        except ValueError:
            raise missing from None
        for device in self._devices:
            if device["id"] == wanted:
                return copy.deepcopy(device)
        raise missing

    def devices_by_type(self, device_type: str) -> List[Dict[str, Any]]:
        """
        Case-insensitive match on `type`.

        Raises:
            NotFoundError: no device has this type (→ 404)
        """
        wanted = device_type.lower()
        matches = [d for d in self._devices if d["type"].lower() == wanted]
        if not matches:
            raise NotFoundError(
                resource="device",
                context={"type": device_type},
                message="No devices found for this type",
            )
        return copy.deepcopy(matches)

    def devices_by_status(self, status: str) -> List[Dict[str, Any]]:
        """Case-insensitive match on `status`; an empty list is a valid answer."""
        wanted = status.lower()
        return copy.deepcopy([d for d in self._devices if d["status"].lower() == wanted])

    def list_slides(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._slides)

    def list_services(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._services)


# Singleton instance
catalog_service = CatalogService()
