from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Specialty:
    id: int
    name: str
    description: str | None = None


@dataclass(frozen=True)
class Doctor:
    id: int
    name: str
    specialty_id: int | None = None
    phone: str | None = None
    image_url: str | None = None
    specialty_name: str | None = None


@dataclass(frozen=True)
class Service:
    id: int
    name: str
    price: float | None = None
