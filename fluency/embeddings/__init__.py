"""
Embeddings package
Text-to-vector conversion and the Qdrant question index
"""

from .generator import EmbeddingGenerator
from .qdrant_manager import QuestionIndex, create_qdrant_client

__all__ = [
    "EmbeddingGenerator",
    "QuestionIndex",
    "create_qdrant_client",
]
