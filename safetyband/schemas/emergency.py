from typing import List, Optional

from safetyband.schemas.common import CamelModel


class ContactOutcomeOut(CamelModel):
    contact_id: Optional[str] = None
    name: str
    phone: str
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class ShareSummary(CamelModel):
    total: int
    successful: int
    failed: int


class SharedLocation(CamelModel):
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    map_link: str


class ShareLocationOut(CamelModel):
    status: str = "success"
    message: str
    location: SharedLocation
    results: List[ContactOutcomeOut]
    summary: ShareSummary


class ChannelStatusOut(CamelModel):
    is_connected: bool
    connection_state: str
    qr_code: Optional[str] = None
