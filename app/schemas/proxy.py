from pydantic import BaseModel, ConfigDict, Field


class HealthStatus(BaseModel):
    """Liveness payload; ``proxy`` never exposes forward-proxy credentials."""

    status: str = "ok"
    timestamp: str = Field(..., description="Current time, ISO-8601")
    version: str
    proxy: str = Field(..., description="Masked forward proxy URL or 'disabled'")


class WbiKeysInfo(BaseModel):
    img_key: str = Field(..., alias="imgKey")
    sub_key: str = Field(..., alias="subKey")
    expires_at: int = Field(..., alias="expiresAt", description="Unix seconds")
    expires_in: int = Field(..., alias="expiresIn", description="Seconds until refresh")

    model_config = ConfigDict(populate_by_name=True)
