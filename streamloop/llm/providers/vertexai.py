"""
StreamLoop Vertex AI Provider - Gemini models served from Google Cloud

Vertex AI speaks the Gemini dialect: bodies, stream decoding and response
parsing are the Gemini strategies. Only the endpoint differs:

    https://{location}-aiplatform.googleapis.com/v1/projects/{project}
        /locations/{location}/publishers/google/models/{model}:{action}

Auth is an API key sent as the ``key`` query parameter and/or an OAuth access
token sent as a bearer token. Embeddings go to the ``:predict`` endpoint with
the Vertex instances/parameters body.

Config:
    LLMConfig(
        model="gemini-2.5-flash",
        api_key="...",                      # optional
        extra={
            "project_id": "my-project",
            "location": "us-central1",
            "access_token": "ya29....",     # optional
        },
    )
"""

from typing import Any, Dict, Sequence

from ...errors import ProviderResponseFormatError
from ..base import LLMConfig
from .base import EMBED, GENERATE, STREAM, EmbeddingsResult, Endpoint, Provider, drop_none
from .gemini import GeminiChunkDecoder, GeminiRequestBuilder, GeminiResponseParser


class VertexAIEndpoint(Endpoint):
    ACTIONS = {
        STREAM: "streamGenerateContent",
        GENERATE: "generateContent",
        EMBED: "predict",
    }

    def __init__(self, config: LLMConfig, provider: str = "VertexAI"):
        super().__init__(config, provider)
        self.project_id = config.extra.get("project_id")
        self.location = config.extra.get("location")
        self.access_token = config.extra.get("access_token")
        if not config.base_url and not (self.project_id and self.location):
            raise ValueError("vertexai requires extra.project_id and extra.location")

    @property
    def base_url(self) -> str:
        if self.config.base_url:
            return self.config.base_url.rstrip("/")
        return (
            f"https://{self.location}-aiplatform.googleapis.com/v1"
            f"/projects/{self.project_id}/locations/{self.location}"
            f"/publishers/google/models"
        )

    def url(self, kind: str, model: str) -> str:
        return f"{self.base_url}/{model}:{self.ACTIONS[kind]}"

    def params(self, kind: str) -> Dict[str, str]:
        params = {}
        if kind == STREAM:
            params["alt"] = "sse"
        if self.config.api_key:
            params["key"] = self.config.api_key
        return params

    def headers(self) -> Dict[str, str]:
        if self.access_token:
            return {"Authorization": f"Bearer {self.access_token}"}
        return {}


class VertexAIRequestBuilder(GeminiRequestBuilder):
    """Gemini bodies, except embeddings use the :predict shape"""

    def embeddings_body(
        self,
        model: str,
        inputs: Sequence[str],
        provider_options: Dict[str, Any],
    ) -> Dict[str, Any]:
        instances = [
            drop_none({
                "content": text,
                "task_type": provider_options.get("taskType"),
                "title": provider_options.get("title"),
            })
            for text in inputs
        ]
        parameters = drop_none({
            "outputDimensionality": provider_options.get("outputDimensionality"),
            "autoTruncate": provider_options.get("autoTruncate"),
        })
        # The model is addressed by the URL, never by the body
        body: Dict[str, Any] = {"instances": instances}
        if parameters:
            body["parameters"] = parameters
        return body


class VertexAIResponseParser(GeminiResponseParser):
    provider = "VertexAI"

    def parse_embeddings(self, data: Dict[str, Any]) -> EmbeddingsResult:
        predictions = data.get("predictions") or []
        try:
            embeddings = [p["embeddings"]["values"] for p in predictions]
        except (KeyError, TypeError):
            embeddings = []
        if not embeddings:
            raise ProviderResponseFormatError(
                f"{self.provider} Error: Invalid response format or missing embedding data",
                self.provider,
            )

        tokens = 0
        for prediction in predictions:
            statistics = prediction["embeddings"].get("statistics") or {}
            tokens += int(statistics.get("token_count") or 0)
        return EmbeddingsResult(embeddings=embeddings, tokens=tokens)


def build_vertexai(config: LLMConfig) -> Provider:
    """Vertex AI provider for the given config"""
    return Provider(
        name="vertexai",
        endpoint=VertexAIEndpoint(config),
        request_builder=VertexAIRequestBuilder(),
        decoder_factory=GeminiChunkDecoder,
        response_parser=VertexAIResponseParser(),
    )
