from datetime import datetime

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
    )


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    timestamp: datetime
    services: dict[str, str]
