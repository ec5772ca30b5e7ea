"""
Pydantic schemas for API request/response models.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ChunkingMode(str, Enum):
    SEMANTIC = "semantic"
    SENTENCE = "sentence"


class ChunkRequest(BaseModel):
    """Request model for the chunking endpoint."""

    pages: List[str] = Field(..., description="Extracted page texts in page order")
    doc_id: Optional[str] = Field(default=None, description="Document identifier")
    normalize: bool = Field(default=True, description="Normalize pages before chunking")
    mode: ChunkingMode = Field(
        default=ChunkingMode.SEMANTIC, description="Chunking strategy"
    )
    metadata: Optional[Dict[str, Any]] = Field(
        default=None, description="Metadata attached to every chunk"
    )

    # Per-request overrides of the configured chunking parameters
    token_limit: Optional[int] = Field(default=None, ge=1)
    batch_token_limit: Optional[int] = Field(default=None, ge=1)
    similarity_threshold: Optional[float] = Field(default=None, gt=0, lt=1)
    min_cluster_size: Optional[int] = Field(default=None, ge=1)


class ChunkInfo(BaseModel):
    """A single output chunk."""

    id: str
    chunk_index: int
    text: str


class ChunkResponse(BaseModel):
    """Response model for the chunking endpoint."""

    doc_id: str
    mode: ChunkingMode
    chunks: List[ChunkInfo]
    chunk_count: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    embedding_provider: str
    embedding_model: str
