# Import every model so Base.metadata is complete for create_all / alembic.
from safetyband.models.base import Base
from safetyband.models.user import User
from safetyband.models.device_registration import DeviceRegistration
from safetyband.models.telemetry import TelemetrySample
from safetyband.models.activity import Activity

__all__ = ["Base", "User", "DeviceRegistration", "TelemetrySample", "Activity"]
