from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    listen: str = Field(":8080", description="Host and port to listen on")
    database_url: str = Field("sqlite:///accounts.db", description="SQLAlchemy DSN")
    root_name: str = Field("", description="User name for the root account")
    root_email: str = Field("", description="Email for the root account")
    root_password: str = Field("", description="Password for the root account")
    root_institute: str = Field("", description="Institute for the root account")
    debug: bool = Field(False, description="Enable debug logging")
    api_title: str = Field("Account API")

    @property
    def has_root(self) -> bool:
        return bool(self.root_name and self.root_email and self.root_password)


settings = Settings()
