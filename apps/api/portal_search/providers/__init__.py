from .embedding import (
    EmbeddingProvider,
    EmbeddingServiceError,
    EmbeddingTimeoutError,
    OpenAICompatibleEmbeddingProvider,
    get_embedding_provider,
)

__all__ = [
    "EmbeddingProvider",
    "EmbeddingServiceError",
    "EmbeddingTimeoutError",
    "OpenAICompatibleEmbeddingProvider",
    "get_embedding_provider",
]
