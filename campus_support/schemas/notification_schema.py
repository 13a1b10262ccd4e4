from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

class NotificationResponse(BaseModel):
    """Notification response data"""
    id: str
    recipient_id: Optional[str] = None
    title: str
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)
