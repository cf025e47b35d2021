"""
IoT Tech Backend — Catalog Schemas
====================================

What:  Response models for the read-only catalog endpoints.
How:   Devices carry type-specific readings (temperature, brightness, locked,
       ...) so `Device` accepts extra keys and returns them unchanged.
"""

from pydantic import BaseModel, ConfigDict


class Device(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    name: str
    type: str
    status: str
    location: str
    image: str


class Slide(BaseModel):
    id: int
    title: str
    caption: str
    image: str


class ServiceOffering(BaseModel):
    id: int
    name: str
    description: str
    icon: str
