"""
Database package for the car rental booking core.

SQLAlchemy models, engine configuration and the data service the booking
state machine persists through.
"""

from .models import (
    Base,
    Car,
    Booking,
    create_all_tables,
    drop_all_tables
)

from .config import (
    DatabaseConfig,
    get_database_config,
    initialize_database
)

from .data_service import SqlBookingDataService

__all__ = [
    # Models
    'Base',
    'Car',
    'Booking',
    'create_all_tables',
    'drop_all_tables',

    # Configuration
    'DatabaseConfig',
    'get_database_config',
    'initialize_database',

    # Data service
    'SqlBookingDataService',
]
