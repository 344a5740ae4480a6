"""Code renderer contracts: generated files, dependencies and env variables."""

from enum import Enum
from typing import List, Optional

from pydantic import Field

from .base import ContractModel


class FileType(str, Enum):
    """Type tag of a generated file."""
    PAGE = "page"
    COMPONENT = "component"
    UTILITY = "utility"
    CONFIG = "config"
    STYLE = "style"
    API = "api"
    SCHEMA = "schema"


class GeneratedFile(ContractModel):
    """A rendered output file - the externally visible artifact."""
    path: str = Field(..., description="Path relative to the project root, e.g. src/app/page.tsx")
    content: str
    type: FileType = FileType.COMPONENT


class DependencySpec(ContractModel):
    """An npm dependency the rendered project needs."""
    name: str
    version: str
    dev: bool = False
    reason: str = ""


class EnvVariable(ContractModel):
    """An environment variable the rendered project needs."""
    name: str
    value: Optional[str] = None
    description: str = ""
    required: bool = True


class RendererOutput(ContractModel):
    """Everything the Code Renderer produces."""
    files: List[GeneratedFile] = Field(..., min_length=1)
    dependencies: List[DependencySpec] = Field(default_factory=list)
    env_variables: List[EnvVariable] = Field(default_factory=list)
    build_instructions: List[str] = Field(default_factory=list)

    def file(self, path: str) -> Optional[GeneratedFile]:
        return next((f for f in self.files if f.path == path), None)
