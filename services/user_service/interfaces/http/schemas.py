from datetime import datetime

from pydantic import BaseModel, ConfigDict

from services.user_service.domain.models import UserRole


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    role: UserRole
    created_at: datetime
