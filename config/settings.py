"""
Configuration settings for the tool installer.
"""

from typing import Optional, Dict
from pathlib import Path
from pydantic import BaseModel, Field, validator
from pydantic_settings import BaseSettings


class DatabaseConfig(BaseModel):
    """Job record store configuration."""
    path: Path = Field(default=Path("data/tool-installer.db"), description="SQLite database file")


class ExecutorConfig(BaseModel):
    """Script executor configuration."""
    interpreter: str = Field(default="bash", description="Command interpreter for install scripts")
    scripts_dir: Path = Field(default=Path("scripts"), description="Base directory for install scripts")
    environment: Dict[str, str] = Field(
        default_factory=dict,
        description="Extra environment variables for every script"
    )
    affirmative_response: str = Field(default="y\n", description="Answer written to prompts")
    timeout_seconds: Optional[float] = Field(
        None,
        description="Kill scripts running longer than this; disabled when unset"
    )
    read_chunk_size: int = Field(default=4096, description="Bytes read from script output at a time")

    @validator('interpreter')
    def validate_interpreter(cls, v):
        if not v.strip():
            raise ValueError("Interpreter must not be empty")
        return v

    @validator('timeout_seconds')
    def validate_timeout(cls, v):
        if v is not None and v <= 0:
            raise ValueError("timeout_seconds must be positive")
        return v


class CatalogConfig(BaseModel):
    """Tool catalog configuration."""
    seed_defaults: bool = Field(default=True, description="Load default tool definitions at startup")


class ApiConfig(BaseModel):
    """HTTP API configuration."""
    title: str = Field(default="Tool Installer API", description="OpenAPI title")
    activity_limit: int = Field(default=50, description="Default number of activity entries returned")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format"
    )
    file_path: Optional[Path] = Field(default=Path("logs/tool_installer.log"))
    max_file_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(default=5, description="Number of log backups to keep")


class Settings(BaseSettings):
    """Main application settings."""
    # Component configs
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Operational settings
    dry_run: bool = Field(default=False, description="Log scripts instead of running them")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_nested_delimiter = "__"
        extra = "ignore"  # Ignore extra fields from environment
