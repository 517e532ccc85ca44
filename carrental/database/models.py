"""
SQLAlchemy database models for the car rental booking core.

- Car: fleet entry with its current daily rate and status
- Booking: a customer's rental of one car, with its financial record

Enum-valued columns hold the enum's string value. Payment detail
sub-records are stored as JSON next to the booking they belong to.
"""

from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Index, JSON, Numeric, String, Text
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

MONEY = Numeric(12, 2)


class Car(Base):
    """
    Car model representing one vehicle in the fleet.

    The booking core reads the daily rate and flips the status as bookings
    are created, cancelled and returned.
    """
    __tablename__ = 'car'

    car_id = Column(String(64), primary_key=True)
    make = Column(String(50), nullable=False)
    model = Column(String(50), nullable=False)
    plate_number = Column(String(20), nullable=True, unique=True)
    daily_rate = Column(MONEY, nullable=False)
    status = Column(String(20), nullable=False, default='available', index=True)

    bookings = relationship("Booking", back_populates="car", lazy="select")

    def __repr__(self):
        return f"<Car(id={self.car_id}, make='{self.make}', model='{self.model}', status='{self.status}')>"


class Booking(Base):
    """
    Booking model representing a car rental.

    Holds the rental period, the daily rate snapshot, payment and refund
    fields, and the return record once the car is back.
    """
    __tablename__ = 'booking'

    booking_id = Column(String(64), primary_key=True)

    customer_id = Column(String(64), nullable=False, index=True)
    driver_id = Column(String(64), nullable=True)
    guarantor_id = Column(String(64), nullable=True)
    car_id = Column(String(64), ForeignKey('car.car_id'), nullable=False, index=True)
    daily_rate = Column(MONEY, nullable=False)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    created_at = Column(DateTime, nullable=False)
    cancelled_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    total_amount = Column(MONEY, nullable=False)
    amount_paid = Column(MONEY, nullable=False, default=0)
    payment_method = Column(String(20), nullable=False)
    payment_status = Column(String(20), nullable=False)
    payment_reference = Column(String(64), nullable=True, unique=True)
    refund_amount = Column(MONEY, nullable=True)
    refund_reason = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, index=True)

    self_drive = Column(Boolean, nullable=False, default=False)
    has_driver = Column(Boolean, nullable=False, default=False)
    insurance_coverage = Column(Boolean, nullable=False, default=False)
    driver_license_id = Column(String(50), nullable=True)
    driver_license_class = Column(String(10), nullable=True)

    pickup_location = Column(String(200), nullable=False, default='')
    dropoff_location = Column(String(200), nullable=False, default='')
    special_requests = Column(Text, nullable=False, default='')

    pay_in_slip = Column(JSON, nullable=True)
    mobile_money = Column(JSON, nullable=True)

    actual_return_time = Column(DateTime, nullable=True)
    penalty_amount = Column(MONEY, nullable=False, default=0)
    penalty_paid = Column(Boolean, nullable=False, default=False)
    penalty_payment_method = Column(String(20), nullable=True)
    receipt_number = Column(String(32), nullable=True)

    car = relationship("Car", back_populates="bookings", lazy="select")

    def __repr__(self):
        return f"<Booking(id={self.booking_id}, car_id={self.car_id}, status='{self.status}')>"


# Availability lookups filter by car, status and date range
Index('idx_booking_car_dates', Booking.car_id, Booking.start_date, Booking.end_date)


def create_all_tables(engine):
    """
    Create all database tables using the provided SQLAlchemy engine.

    Args:
        engine: SQLAlchemy engine instance
    """
    Base.metadata.create_all(bind=engine)


def drop_all_tables(engine):
    Base.metadata.drop_all(bind=engine)
