"""
Tool catalog data models.
"""

from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field


class ToolRecord(BaseModel):
    """A tool known to the catalog."""
    id: int = Field(..., description="Catalog identifier")
    name: str = Field(..., description="Unique tool slug")
    display_name: str = Field(..., description="Human-readable tool name")
    category: Optional[str] = Field(None, description="Catalog category")
    description: Optional[str] = Field(None, description="Tool description")
    script_path: str = Field(..., description="Install script, relative to the scripts directory")
    icon: Optional[str] = Field(None, description="UI icon name")
    installed: bool = Field(default=False, description="Whether the tool has been installed")
    install_date: Optional[datetime] = Field(None, description="When the tool was installed")

    class Config:
        json_schema_extra = {
            "example": {
                "id": 15,
                "name": "git",
                "display_name": "Git",
                "category": "Development Tools",
                "description": "Version control system",
                "script_path": "dev-tools/02-git.sh",
                "icon": "mdi-git",
                "installed": False
            }
        }


class ToolSet(BaseModel):
    """A named group of tools installed together."""
    name: str = Field(..., description="Unique tool set slug")
    display_name: str = Field(..., description="Human-readable name")
    description: Optional[str] = Field(None, description="Tool set description")
    tools: List[str] = Field(default_factory=list, description="Tool names in install order")


class InstallRequest(BaseModel):
    """One tool to install within a batch."""
    tool_id: int = Field(..., description="Catalog identifier of the tool")
    name: str = Field(..., description="Tool slug")
    display_name: str = Field(..., description="Human-readable tool name")
    script_path: str = Field(..., description="Path to the install script")

    class Config:
        frozen = True

    @classmethod
    def from_tool(cls, tool: ToolRecord) -> "InstallRequest":
        return cls(
            tool_id=tool.id,
            name=tool.name,
            display_name=tool.display_name,
            script_path=tool.script_path
        )
