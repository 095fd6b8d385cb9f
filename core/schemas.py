"""Pydantic contracts for structured model replies.

Model output is untrusted: every reply is validated against one of these
models before it becomes a FileTask or a GeneratedFile. A reply that does
not validate fails the plan or the single file; it is never patched up.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class FileTaskReply(BaseModel):
    path: str = Field(min_length=1)
    type: str = "utility"
    description: str = ""
    dependencies: List[str] = Field(default_factory=list)
    priority: int = Field(default=5, ge=0, le=10)


class ArchitectureReply(BaseModel):
    framework: str = "nextjs"
    styling: str = "tailwind"
    stateManagement: str = "react-context"
    routing: str = "app-router"
    typescript: bool = True
    appRouter: bool = True
    uiLibrary: Optional[str] = None
    dataFetching: Optional[str] = None
    reasoning: Optional[str] = None


class PackageDependencyReply(BaseModel):
    package: str = Field(min_length=1)
    version: str = "latest"
    reason: str = ""
    type: Literal["dependency", "devDependency", "peerDependency"] = "dependency"


class PlanReply(BaseModel):
    files: List[FileTaskReply] = Field(min_length=1)
    architecture: ArchitectureReply = Field(default_factory=ArchitectureReply)
    dependencies: List[PackageDependencyReply] = Field(default_factory=list)
    generationOrder: List[str] = Field(default_factory=list)


class GenerationMetadata(BaseModel):
    isClientComponent: bool = False
    hasAsyncOperations: bool = False
    apiEndpoints: List[str] = Field(default_factory=list)
    stateVariables: List[str] = Field(default_factory=list)


class FileGenerationReply(BaseModel):
    content: str = Field(min_length=1)
    imports: List[str] = Field(default_factory=list)
    exports: List[str] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)
    metadata: GenerationMetadata = Field(default_factory=GenerationMetadata)
    errors: List[str] = Field(default_factory=list)
