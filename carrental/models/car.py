"""
Car model for the car rental booking core.

Cars are owned by the fleet module; the booking core only reads the daily
rate and flips the status as bookings move through their lifecycle.
"""

from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

from .enums import CarStatus


class CarModel(BaseModel):
    """
    Fleet car as seen by the booking core.

    Supplies the daily rate snapshotted into new bookings and the status
    updated as a side effect of booking transitions.
    """
    model_config = ConfigDict(from_attributes=True)

    car_id: str = Field(..., description="Car identifier")
    make: str = Field(default="", max_length=50, description="Manufacturer, e.g. Toyota")
    model: str = Field(default="", max_length=50, description="Model, e.g. Corolla")
    plate_number: Optional[str] = Field(None, max_length=20, description="Registration number")
    daily_rate: Decimal = Field(..., ge=0, description="Daily rental rate")
    status: CarStatus = Field(default=CarStatus.AVAILABLE, description="Current fleet status")

    @property
    def display_name(self) -> str:
        return f"{self.make} {self.model}".strip() or self.car_id
