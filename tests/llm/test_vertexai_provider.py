"""
Tests for StreamLoop Vertex AI provider
"""

import pytest

from streamloop.errors import ProviderResponseFormatError
from streamloop.llm.base import LLMConfig
from streamloop.llm.history import ConversationHistory
from streamloop.llm.providers import get_provider
from streamloop.llm.providers.base import GenerationOptions
from streamloop.llm.providers.gemini import GeminiChunkDecoder


BASE = (
    "https://us-central1-aiplatform.googleapis.com/v1/projects/test-project"
    "/locations/us-central1/publishers/google/models"
)


class TestVertexAIEndpoint:
    """Tests for URLs and auth"""

    def test_stream_url_and_key(self, vertex_provider):
        request = vertex_provider.stream_request(
            GenerationOptions(model="gemini-2.5-flash"), ConversationHistory.from_prompt("Hi")
        )

        assert request.url == f"{BASE}/gemini-2.5-flash:streamGenerateContent"
        assert request.params == {"alt": "sse", "key": "test-key-1234"}
        assert request.headers == {}
        assert request.provider == "VertexAI"

    def test_generate_and_predict_urls(self, vertex_provider):
        structured = vertex_provider.structured_request(
            GenerationOptions(model="gemini-2.5-flash"), ConversationHistory.from_prompt("Hi"), {}
        )
        embeddings = vertex_provider.embeddings_request("text-embedding-005", ["a"])

        assert structured.url == f"{BASE}/gemini-2.5-flash:generateContent"
        assert structured.params == {"key": "test-key-1234"}
        assert embeddings.url == f"{BASE}/text-embedding-005:predict"

    def test_access_token(self):
        provider = get_provider("vertexai", LLMConfig(
            model="gemini-2.5-flash",
            extra={"project_id": "p", "location": "europe-west4", "access_token": "ya29.token"},
        ))

        request = provider.embeddings_request("text-embedding-005", ["a"])

        assert request.url.startswith("https://europe-west4-aiplatform.googleapis.com/v1/projects/p/")
        assert request.headers == {"Authorization": "Bearer ya29.token"}
        assert request.params == {}

    def test_requires_project_and_location(self):
        with pytest.raises(ValueError, match="project_id"):
            get_provider("vertexai", LLMConfig(model="m", api_key="k"))

    def test_base_url_without_project(self):
        provider = get_provider("vertexai", LLMConfig(model="m", base_url="http://localhost:9000/models"))
        request = provider.embeddings_request("m", ["a"])
        assert request.url == "http://localhost:9000/models/m:predict"


class TestVertexAIStrategies:
    """Tests for the Gemini strategies Vertex reuses"""

    def test_uses_gemini_decoder(self, vertex_provider):
        assert isinstance(vertex_provider.new_decoder(), GeminiChunkDecoder)

    def test_new_decoder_per_call(self, vertex_provider):
        assert vertex_provider.new_decoder() is not vertex_provider.new_decoder()

    def test_embeddings_body(self, vertex_provider):
        body = vertex_provider.request_builder.embeddings_body(
            "text-embedding-005",
            ["What is life?"],
            {"taskType": "QUESTION_ANSWERING", "outputDimensionality": 8, "autoTruncate": False},
        )

        assert body == {
            "instances": [{"content": "What is life?", "task_type": "QUESTION_ANSWERING"}],
            "parameters": {"outputDimensionality": 8, "autoTruncate": False},
        }

    def test_embeddings_body_without_options(self, vertex_provider):
        body = vertex_provider.request_builder.embeddings_body("m", ["a", "b"], {})
        assert body == {"instances": [{"content": "a"}, {"content": "b"}]}


class TestVertexAIResponseParser:
    """Tests for :predict parsing"""

    def test_predictions(self, vertex_provider):
        result = vertex_provider.response_parser.parse_embeddings({
            "predictions": [
                {"embeddings": {"values": [0.1], "statistics": {"token_count": 5}}},
                {"embeddings": {"values": [0.2], "statistics": {"token_count": 3}}},
            ]
        })

        assert result.embeddings == [[0.1], [0.2]]
        assert result.tokens == 8

    @pytest.mark.parametrize("body", [{}, {"predictions": []}, {"predictions": [{"values": [1]}]}])
    def test_missing_embeddings(self, vertex_provider, body):
        with pytest.raises(ProviderResponseFormatError) as exc_info:
            vertex_provider.response_parser.parse_embeddings(body)
        assert str(exc_info.value) == "VertexAI Error: Invalid response format or missing embedding data"

    def test_generation_errors_name_vertex(self, vertex_provider):
        with pytest.raises(ProviderResponseFormatError, match="^VertexAI Error"):
            vertex_provider.response_parser.parse_generation({})
