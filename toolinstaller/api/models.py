"""
Request and response bodies for the HTTP API.
"""

from typing import List, Optional
from pydantic import BaseModel, Field

from ..models.installation import Job
from ..models.tool import ToolRecord, ToolSet


class InstallToolsBody(BaseModel):
    tool_id: Optional[int] = Field(None, alias="toolId")
    tool_ids: Optional[List[int]] = Field(None, alias="toolIds")

    class Config:
        populate_by_name = True

    def ids(self) -> List[int]:
        if self.tool_ids:
            return list(self.tool_ids)
        return [self.tool_id] if self.tool_id is not None else []


class InstallToolSetBody(BaseModel):
    tool_set_id: Optional[str] = Field(None, alias="toolSetId")

    class Config:
        populate_by_name = True


class InstallStarted(BaseModel):
    success: bool = True
    installation_id: int = Field(..., serialization_alias="installationId")
    tools: List[ToolRecord] = Field(default_factory=list)
    tool_set: Optional[ToolSet] = Field(None, serialization_alias="toolSet")

    class Config:
        populate_by_name = True


class CancelResult(BaseModel):
    success: bool
    message: str


class ActiveInstallations(BaseModel):
    installations: List[Job]
