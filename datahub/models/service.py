from datetime import datetime
from typing import Any, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

DatasetStatus = Literal["active", "archived", "deleted"]


class DatasetCreate(BaseModel):
    id: Optional[str] = Field(default=None, max_length=36)
    name: str = Field(min_length=1, max_length=255)
    version: str = "1.0.0"
    description: Optional[str] = None
    source_type: str = Field(min_length=1, max_length=50)
    source_config: dict[str, Any] = Field(default_factory=dict)
    collected_by: str = "unknown"
    collection_params: dict[str, Any] = Field(default_factory=dict)
    item_count: int = Field(default=0, ge=0)
    total_size_bytes: int = Field(default=0, ge=0)
    storage_backend: str = Field(min_length=1, max_length=50)
    storage_path: str = Field(min_length=1, max_length=1024)
    host: Optional[str] = None
    owner: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    status: DatasetStatus = "active"
    checksum: Optional[str] = None


class DatasetUpdate(BaseModel):
    """Partial update; only fields present in the request body are applied."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    version: Optional[str] = None
    description: Optional[str] = None
    source_config: Optional[dict[str, Any]] = None
    collection_params: Optional[dict[str, Any]] = None
    item_count: Optional[int] = Field(default=None, ge=0)
    total_size_bytes: Optional[int] = Field(default=None, ge=0)
    storage_path: Optional[str] = Field(default=None, min_length=1, max_length=1024)
    host: Optional[str] = None
    owner: Optional[str] = None
    tags: Optional[List[str]] = None
    status: Optional[DatasetStatus] = None
    checksum: Optional[str] = None


class DatasetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    version: Optional[str] = None
    description: Optional[str] = None
    source_type: str
    source_config: Optional[dict[str, Any]] = None
    collected_at: Optional[datetime] = None
    collected_by: Optional[str] = None
    collection_params: Optional[dict[str, Any]] = None
    item_count: Optional[int] = 0
    total_size_bytes: Optional[int] = 0
    storage_backend: str
    storage_path: str
    host: Optional[str] = None
    owner: Optional[str] = None
    tags: Optional[List[str]] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    checksum: Optional[str] = None
    schema_version: Optional[str] = None


class DatasetSearchResult(DatasetOut):
    relevance_score: Optional[float] = None


class DatasetList(BaseModel):
    items: List[DatasetOut]
    total: int
    limit: int
    offset: int


class SearchRequest(BaseModel):
    q: str
    source_type: Optional[str] = None
    status: Optional[str] = None
    owner: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    fuzzy: bool = False
    limit: int = 20
    offset: int = 0


class SearchResponse(BaseModel):
    items: List[DatasetSearchResult]
    total: int
    query: str


class DatasetStats(BaseModel):
    total_datasets: int
    total_items: int
    total_bytes: int
    by_source_type: dict[str, int]
    by_status: dict[str, int]
