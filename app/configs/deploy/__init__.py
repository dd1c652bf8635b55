from pydantic import Field, PositiveInt
from pydantic_settings import BaseSettings


class DeploymentConfig(BaseSettings):
    """
    Listen address and runtime mode of the proxy process
    """

    HOST: str = Field(
        description="Address the HTTP server binds to",
        default="127.0.0.1",
    )

    PORT: PositiveInt = Field(
        description="Port the HTTP server listens on",
        default=3000,
    )

    DEBUG: bool = Field(
        description="Enable debug mode for additional logging and error details",
        default=False,
    )
