"""Request and response schemas for the HTTP API."""
from typing import Dict, List, Optional, Union
from pydantic import BaseModel, Field


class AskRequest(BaseModel):
    """Question about one document (session_id) or all documents."""
    question: Optional[str] = None
    session_id: Optional[str] = Field(default=None, alias="sessionId")

    model_config = {"populate_by_name": True}


class AnalyzeRequest(BaseModel):
    session_id: Optional[str] = Field(default=None, alias="sessionId")

    model_config = {"populate_by_name": True}


class UploadResponse(BaseModel):
    message: str
    filename: str
    chunk_count: int
    session_id: str


class Source(BaseModel):
    text: str
    filename: str
    rank: Optional[int] = None
    scores: Dict[str, float] = Field(default_factory=dict)


class RetrievalInfoModel(BaseModel):
    initial_retrieved: int
    after_reranking: int
    documents_searched: int
    settings: Dict[str, Union[int, float, str]] = Field(default_factory=dict)


class AskResponse(BaseModel):
    answer: str
    sources: List[Source]
    retrieval_info: RetrievalInfoModel


class SessionModel(BaseModel):
    session_id: str
    filename: str
    chunk_count: int


class DeleteResponse(BaseModel):
    message: str
    deleted_count: int


class ClauseModel(BaseModel):
    clause_name: str
    clause_type: str
    risk_level: str
    description: str


class AnalyzeResponse(BaseModel):
    clauses: List[ClauseModel]
    error: Optional[str] = None
