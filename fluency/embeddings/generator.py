"""
Embedding Generator
Converts question text to vectors using OpenAI text-embedding-3-small (1536-dim)
"""

import logging
from typing import List

from openai import OpenAI, OpenAIError

from fluency import config

log = logging.getLogger(__name__)


class EmbeddingGenerator:
    """
    Generate embeddings for question text

    Model: text-embedding-3-small
    - Dimensions: 1536
    - Used to rank search results when a free-text query is given
    """

    DEFAULT_MODEL = "text-embedding-3-small"
    EMBEDDING_DIM = 1536

    def __init__(self, model_name: str = DEFAULT_MODEL, api_key: str = None):
        """
        Args:
            model_name: OpenAI model name
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
        """
        self.model_name = model_name
        self.api_key = api_key or config.OPENAI_API_KEY

        if not self.api_key:
            raise ValueError(
                "OPENAI_API_KEY not set. Please set environment variable or pass api_key parameter."
            )

        self.client = OpenAI(api_key=self.api_key)
        log.info(f"[EMBED] Embedding model ready: {model_name} ({self.EMBEDDING_DIM}-dim)")

    def generate_embedding(self, text: str) -> List[float]:
        """
        Embed a single text. Empty text and API failures yield a zero vector
        so indexing never blocks on the embedding provider.
        """
        if not text or not text.strip():
            return [0.0] * self.EMBEDDING_DIM

        try:
            response = self.client.embeddings.create(
                input=text,
                model=self.model_name
            )
            return response.data[0].embedding
        except OpenAIError as e:
            log.warning(f"[EMBED] Embedding generation failed: {e}")
            return [0.0] * self.EMBEDDING_DIM

    def get_embedding_dimension(self) -> int:
        return self.EMBEDDING_DIM

