from fastapi import APIRouter
from safetyband.api.v1 import users, devices, sensor_data, activities, emergency

api_router = APIRouter(prefix="/v1")
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(devices.router, prefix="/devices", tags=["devices"])
api_router.include_router(sensor_data.router, prefix="/sensor-data", tags=["sensor-data"])
api_router.include_router(activities.router, prefix="/activities", tags=["activities"])
api_router.include_router(emergency.router, prefix="/emergency", tags=["emergency"])
