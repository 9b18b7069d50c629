from __future__ import annotations

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field


class FieldModel(BaseModel):
    title: str = Field(default="")
    description: str = Field(default="")


class ExtractSuccess(BaseModel):
    success: bool = True
    fileName: str
    dataset: Dict[str, List[str]]
    rows: List[Dict[str, str]] = Field(default_factory=list)


class ExtractFailure(BaseModel):
    success: bool = False
    error: str
    details: Optional[str] = Field(default=None)


class BatchEntry(BaseModel):
    success: bool
    dataset: Optional[Dict[str, List[str]]] = Field(default=None)
    error: Optional[str] = Field(default=None)
    details: Optional[str] = Field(default=None)


class BatchResponse(BaseModel):
    results: Dict[str, BatchEntry]
    order: List[str]
    succeeded: int
    failed: int


class ExportRequest(BaseModel):
    results: Dict[str, Union[Dict[str, List[str]], str, None]]


class TemplateCreate(BaseModel):
    name: str = Field(default="")
    fields: List[FieldModel] = Field(default_factory=list)


class TemplateOut(BaseModel):
    id: str
    name: str
    fields: List[FieldModel]


class HistoryOut(BaseModel):
    id: str
    timestamp: int
    fileName: str
    fields: List[FieldModel]
    result: str


class HistoryDetail(HistoryOut):
    dataset: Optional[Dict[str, List[str]]] = Field(default=None)
    rows: List[Dict[str, str]] = Field(default_factory=list)
    error: Optional[str] = Field(default=None)


class DeleteResponse(BaseModel):
    deleted: bool
    id: str
