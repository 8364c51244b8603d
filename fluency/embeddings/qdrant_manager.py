"""
Qdrant search index for question details
One collection per module; each point is a root question with its full detail as payload
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from qdrant_client import QdrantClient
from qdrant_client.models import (
    Distance, VectorParams, PointStruct, PointIdsList,
    Filter, FieldCondition, MatchValue, MatchAny, MatchText, Range,
)

from fluency import config

log = logging.getLogger(__name__)

ROOT_FIELDS = {
    "id", "type", "topic", "instruction", "title", "passages",
    "audio_urls", "transcript", "image_urls", "max_time", "version",
}
TEXT_FILTERS = ("instruction", "title", "passages", "transcript", "metadata")

PAYLOAD_INDEXES = [
    ("type", "keyword"),
    ("status", "keyword"),
    ("topic", "keyword"),
    ("max_time", "integer"),
    ("instruction", "text"),
    ("title", "text"),
    ("passages", "text"),
    ("transcript", "text"),
    ("metadata", "text"),
]


def create_qdrant_client(url: Optional[str] = None) -> QdrantClient:
    url = url or config.QDRANT_URL
    if url:
        return QdrantClient(url=url)
    return QdrantClient(host=config.QDRANT_HOST, port=config.QDRANT_PORT)


def _strings(value: Any) -> Iterable[str]:
    """Every string inside a sub-entity structure, skipping ids."""
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for key, item in value.items():
            if key != "id" and not key.endswith("_id"):
                yield from _strings(item)
    elif isinstance(value, list):
        for item in value:
            yield from _strings(item)


def metadata_text(detail: dict) -> str:
    """Flattened text of all sub-entities in a detail (options, answers, rows...)"""
    parts = []
    for key, value in detail.items():
        if key not in ROOT_FIELDS:
            parts.extend(_strings(value))
    return " ".join(parts)


def embedding_text(detail: dict) -> str:
    parts = list(detail.get("topic") or [])
    parts.append(detail.get("instruction") or "")
    parts.append(detail.get("title") or "")
    parts.extend(detail.get("passages") or [])
    parts.append(detail.get("transcript") or "")
    parts.append(metadata_text(detail))
    return "\n".join(p for p in parts if p)


def build_payload(detail: dict, status: str) -> dict:
    """Filterable fields are lower-cased copies; the untouched detail rides along."""
    return {
        "question_id": detail["id"],
        "type": detail["type"],
        "topic": [t.lower() for t in detail.get("topic") or []],
        "instruction": (detail.get("instruction") or "").lower(),
        "title": (detail.get("title") or "").lower(),
        "passages": [p.lower() for p in detail.get("passages") or []],
        "transcript": (detail.get("transcript") or "").lower(),
        "image_urls": list(detail.get("image_urls") or []),
        "max_time": detail["max_time"],
        "version": detail["version"],
        "status": status,
        "metadata": metadata_text(detail).lower(),
        "detail": detail,
    }


def parse_time_range(value: Optional[str]) -> Optional[Tuple[Optional[int], Optional[int]]]:
    """
    Parse a 'min-max' max_time filter. Either bound may be omitted ('60-', '-600').
    A single number means an exact match. Raises ValueError on malformed input.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    if "-" in text:
        low_text, high_text = (part.strip() for part in text.split("-", 1))
    else:
        low_text = high_text = text
    if not low_text and not high_text:
        raise ValueError(f"invalid max_time range: {value}")
    try:
        low = int(low_text) if low_text else None
        high = int(high_text) if high_text else None
    except ValueError:
        raise ValueError(f"invalid max_time range: {value}") from None
    if low is not None and high is not None and low > high:
        raise ValueError(f"invalid max_time range: {value} (min greater than max)")
    return low, high


def build_filter(filters, time_range=None) -> Optional[Filter]:
    """Translate QuestionSearchFilters into a Qdrant filter (None when unfiltered)."""
    must = []
    if filters.type:
        must.append(FieldCondition(key="type", match=MatchValue(value=filters.type)))
    if filters.status:
        must.append(FieldCondition(key="status", match=MatchValue(value=filters.status)))
    if filters.topic:
        topics = [t.strip().lower() for t in filters.topic.split(",") if t.strip()]
        if topics:
            must.append(FieldCondition(key="topic", match=MatchAny(any=topics)))
    for field in TEXT_FILTERS:
        value = getattr(filters, field)
        if value and value.strip():
            must.append(FieldCondition(key=field, match=MatchText(text=value.strip().lower())))
    if filters.image_urls:
        must.append(FieldCondition(key="image_urls", match=MatchText(text=filters.image_urls.strip())))
    if time_range is not None:
        low, high = time_range
        must.append(FieldCondition(key="max_time", range=Range(gte=low, lte=high)))
    return Filter(must=must) if must else None


class QuestionIndex:
    """
    Manages the per-module question collections.

    Vectors embed the question text for free-text ranking; filters run on
    payload fields, so searches without a query never touch the embedder.
    """

    def __init__(self, client: QdrantClient, embedder):
        self.client = client
        self.embedder = embedder

    @staticmethod
    def collection_name(module: str) -> str:
        return f"{module}_questions"

    def ensure_collection(self, module: str) -> str:
        name = self.collection_name(module)
        if self.client.collection_exists(name):
            return name
        self.client.create_collection(
            collection_name=name,
            vectors_config=VectorParams(
                size=self.embedder.get_embedding_dimension(),
                distance=Distance.COSINE,
            ),
        )
        for field, schema in PAYLOAD_INDEXES:
            self.client.create_payload_index(
                collection_name=name,
                field_name=field,
                field_schema=schema,
            )
        log.info(f"[SEARCH] Created collection: {name}")
        return name

    def upsert_question(self, module: str, detail: dict, status: str):
        """Index (or re-index) one question detail with its completion status."""
        name = self.ensure_collection(module)
        point = PointStruct(
            id=str(detail["id"]),
            vector=self.embedder.generate_embedding(embedding_text(detail)),
            payload=build_payload(detail, status),
        )
        self.client.upsert(collection_name=name, points=[point])

    def delete_question(self, module: str, question_id: UUID):
        name = self.collection_name(module)
        if not self.client.collection_exists(name):
            return
        self.client.delete(
            collection_name=name,
            points_selector=PointIdsList(points=[str(question_id)]),
        )

    def delete_module(self, module: str) -> bool:
        """Drop the module's collection; it is recreated on the next upsert."""
        name = self.collection_name(module)
        if not self.client.collection_exists(name):
            return False
        self.client.delete_collection(name)
        log.info(f"[SEARCH] Deleted collection: {name}")
        return True

    def search(self, module: str, filters, time_range=None) -> Tuple[List[Dict[str, Any]], int]:
        """
        Paginated search. Returns (details, total matching).
        With filters.query the page is ranked by similarity, otherwise by point order.
        """
        name = self.collection_name(module)
        if not self.client.collection_exists(name):
            return [], 0

        query_filter = build_filter(filters, time_range)
        offset = (filters.page - 1) * filters.limit
        total = self.client.count(collection_name=name, count_filter=query_filter, exact=True).count

        if filters.query and filters.query.strip():
            response = self.client.query_points(
                collection_name=name,
                query=self.embedder.generate_embedding(filters.query),
                query_filter=query_filter,
                limit=filters.limit,
                offset=offset,
                with_payload=True,
            )
            points = response.points
        else:
            points, _ = self.client.scroll(
                collection_name=name,
                scroll_filter=query_filter,
                limit=offset + filters.limit,
                with_payload=True,
                with_vectors=False,
            )
            points = points[offset:]

        return [p.payload["detail"] for p in points], total
