"""
Exportable models describing a single recorded invocation.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class SourceLocation(BaseModel):
    """Where a source file comes from (core, plugin, mu-plugin, theme, ...)."""
    type: str = Field(..., description="Kind of origin, e.g. 'core', 'plugin', 'mu-plugin' or 'theme'")
    name: str = Field(..., description="Name of the origin, e.g. 'akismet' or 'twentytwenty'")
    data: Dict[str, Any] = Field(default_factory=dict, description="Additional data about the origin")


class SourceInfo(BaseModel):
    """Source section of an exported invocation."""
    file: Optional[str] = Field(None, description="File in which the callable was defined")
    type: Optional[str] = Field(None, description="Resolved origin kind, if known")
    name: Optional[str] = Field(None, description="Resolved origin name, if known")


class InvocationData(BaseModel):
    """Detached, serializable record of one invocation."""
    id: int = Field(..., description="Identifier of the invocation within its session")
    function: str = Field(..., description="Human-readable name of the invoked callable")
    duration: float = Field(..., ge=0, description="Inclusive duration in seconds")
    source: SourceInfo = Field(default_factory=SourceInfo, description="Source location of the callable")
    parent: Optional[int] = Field(None, description="Identifier of the enclosing invocation")
    children: List[int] = Field(default_factory=list, description="Identifiers of nested invocations in call order")
    events: Optional[Dict[str, List[Dict[str, Any]]]] = Field(
        None,
        description="Attributed side effects keyed by resource kind; only non-empty, exposed kinds"
    )
