"""
StreamLoop Config - YAML application configuration

Example config.yaml:

    llm:
      provider: vertexai
      model: gemini-2.5-flash
      api_key: ${VERTEXAI_API_KEY}
      max_retries: 2

    vertexai:
      project_id: my-project
      location: us-central1

    loop:
      max_steps: 3
      tool_timeout: 30

    embedding:
      model: text-embedding-005

    system_prompt: You are a helpful assistant.

``${VAR}`` references are replaced with environment variables before parsing;
a reference to an unset variable is an error.
"""

import logging
import os
import re
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field

from .llm.base import LLMConfig, LoopConfig

logger = logging.getLogger(__name__)


def _load_config(path: str) -> dict:
    """Read YAML config file with ${VAR} environment variable substitution."""
    with open(path, "r", encoding="utf-8") as f:
        raw = f.read()

    # Replace ${VAR} with environment variable values
    def _replace_env(match):
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ValueError(
                f"Environment variable '{var_name}' not set "
                f"(referenced in config file '{path}')"
            )
        return value

    resolved = re.sub(r"\$\{(\w+)\}", _replace_env, raw)
    return yaml.safe_load(resolved) or {}


class LLMSettings(BaseModel):
    provider: str
    model: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    timeout: float = 60.0
    stream_timeout: float = 120.0
    max_retries: int = Field(0, ge=0)
    retry_base_delay: float = 1.0
    default_headers: Dict[str, str] = Field(default_factory=dict)


class VertexAISettings(BaseModel):
    project_id: str
    location: str
    access_token: Optional[str] = None


class LoopSettings(BaseModel):
    max_steps: int = Field(1, ge=1)
    parallel_tool_calls: bool = True
    tool_timeout: Optional[float] = 30.0


class EmbeddingSettings(BaseModel):
    model: str
    provider_options: Dict[str, Any] = Field(default_factory=dict)


class AppConfig(BaseModel):
    """Validated application configuration"""
    llm: LLMSettings
    loop: LoopSettings = Field(default_factory=LoopSettings)
    vertexai: Optional[VertexAISettings] = None
    embedding: Optional[EmbeddingSettings] = None
    system_prompt: Optional[str] = None

    @classmethod
    def from_file(cls, path: str) -> "AppConfig":
        config = cls.model_validate(_load_config(path))
        logger.info(f"Loaded config from {path}: provider={config.llm.provider} model={config.llm.model}")
        return config

    def llm_config(self) -> LLMConfig:
        extra: Dict[str, Any] = {}
        if self.vertexai is not None:
            extra.update(self.vertexai.model_dump(exclude_none=True))
        settings = self.llm.model_dump(exclude={"provider"})
        return LLMConfig(**settings, extra=extra)

    def loop_config(self) -> LoopConfig:
        return LoopConfig(**self.loop.model_dump())

    def masked(self) -> Dict[str, Any]:
        """Config for display, API keys and tokens masked"""
        data = self.model_dump()
        if data["llm"].get("api_key"):
            data["llm"]["api_key"] = mask_secret(data["llm"]["api_key"])
        if data.get("vertexai") and data["vertexai"].get("access_token"):
            data["vertexai"]["access_token"] = mask_secret(data["vertexai"]["access_token"])
        return data


def mask_secret(value: str) -> str:
    """Mask a secret for display."""
    if len(value) > 8:
        return value[:4] + "..." + value[-4:]
    return "****"
