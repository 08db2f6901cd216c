"""Pydantic request/response models for the StreamLoop API."""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class GenerateRequest(BaseModel):
    prompt: str
    system_prompt: Optional[str] = None
    tool_choice: Optional[Literal["auto", "any", "none"]] = None
    max_steps: Optional[int] = Field(None, ge=1)
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    provider_options: Optional[Dict[str, Any]] = None


class TextResponseModel(BaseModel):
    text: str
    finish_reason: str
    usage: Dict[str, int]
    model: str
    step_count: int
    tool_calls: List[Dict[str, Any]] = Field(default_factory=list)
    tool_results: List[Dict[str, Any]] = Field(default_factory=list)


class EmbeddingsRequest(BaseModel):
    input: Union[str, List[str]]
    model: Optional[str] = None
    provider_options: Optional[Dict[str, Any]] = None


class EmbeddingsResponseModel(BaseModel):
    embeddings: List[List[float]]
    tokens: int
    model: str
