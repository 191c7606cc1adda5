"""
API Response Models
"""

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class ModuleSearchResponse(BaseModel):
    results: List[Dict[str, str]] = Field(default_factory=list)
    total: int = 0


class Pagination(BaseModel):
    limit: int
    offset: int
    hasMore: bool


class ThreadsResponse(BaseModel):
    success: bool = True
    count: int
    threads: List[Dict[str, Any]]
    pagination: Pagination
