"""
StreamLoop Embeddings - Vector embeddings through the provider's endpoint
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from .llm.providers.base import Provider
from .llm.transport import HTTPTransport


@dataclass
class EmbeddingsResponse:
    """Embeddings in input order plus the token count the provider reported"""
    embeddings: List[List[float]]
    tokens: int = 0
    model: str = ""
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "embeddings": self.embeddings,
            "tokens": self.tokens,
            "model": self.model,
        }


async def embed(
    provider: Provider,
    transport: HTTPTransport,
    model: str,
    inputs: Union[str, Sequence[str]],
    provider_options: Optional[Dict[str, Any]] = None,
) -> EmbeddingsResponse:
    """
    Embed one or more inputs.

    Args:
        provider: Provider strategies
        transport: HTTP transport
        model: Embedding model (e.g. "text-embedding-005")
        inputs: A string or a sequence of strings
        provider_options: e.g. taskType, title, outputDimensionality, autoTruncate

    Raises:
        ValueError: no inputs given
        ProviderResponseFormatError: the body carries no embedding data
    """
    if isinstance(inputs, str):
        inputs = [inputs]
    if not inputs:
        raise ValueError("at least one input is required")

    request = provider.embeddings_request(model, inputs, provider_options)
    data = await transport.send(request)
    result = provider.response_parser.parse_embeddings(data)
    return EmbeddingsResponse(
        embeddings=result.embeddings,
        tokens=result.tokens,
        model=model,
        raw=data,
    )
