"""
Document stores consumed by the render pipeline.

A store hands out documents and, per document, their approved comments.  It
may be asked for the same comments more than once per run and has no memory
of what the run did to the previous copies; :mod:`snipvault.rehydrate` deals
with that.

Two implementations are provided: :class:`InMemoryDocumentStore` (JSON files,
tests) and :class:`HttpDocumentStore`, an ``aiohttp`` client for a small REST
API::

    GET {base_url}/documents                  -> [{"id", "title", "content", "excerpt"}]
    GET {base_url}/documents/{id}/comments    -> [{"id", "content", "author", "approved"}]
"""
from __future__ import annotations

import asyncio
import copy
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Hashable, Iterable, List, Optional

import aiohttp

from .exceptions import DocumentStoreError

logger = logging.getLogger(__name__)

__all__ = [
    "Document",
    "Comment",
    "InMemoryDocumentStore",
    "HttpDocumentStore",
    "load_documents_json",
    "documents_from_data",
]


@dataclass
class Document:
    id: Hashable
    title: str = ""
    content: str = ""
    excerpt: str = ""


@dataclass
class Comment:
    id: Hashable
    document_id: Hashable
    content: str = ""
    author: str = ""
    approved: bool = True


def _document_from_dict(data: Dict[str, Any]) -> Document:
    try:
        return Document(
            id=data["id"],
            title=data.get("title", ""),
            content=data.get("content", ""),
            excerpt=data.get("excerpt", ""),
        )
    except (KeyError, TypeError, AttributeError) as exc:
        raise DocumentStoreError(f"malformed document record: {data!r}") from exc


def _comment_from_dict(data: Dict[str, Any], document_id: Hashable) -> Comment:
    try:
        return Comment(
            id=data["id"],
            document_id=document_id,
            content=data.get("content", ""),
            author=data.get("author", ""),
            approved=bool(data.get("approved", True)),
        )
    except (KeyError, TypeError, AttributeError) as exc:
        raise DocumentStoreError(f"malformed comment record: {data!r}") from exc


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------

class InMemoryDocumentStore:
    """Store backed by plain lists.

    Every fetch returns fresh copies, like rows read again from a database.
    """

    def __init__(
        self,
        documents: Iterable[Document] = (),
        comments: Iterable[Comment] = (),
    ) -> None:
        self._documents: List[Document] = list(documents)
        self._comments: List[Comment] = list(comments)
        self.document_fetches: int = 0
        self.comment_fetches: int = 0

    async def fetch_documents(self) -> List[Document]:
        self.document_fetches += 1
        return copy.deepcopy(self._documents)

    async def fetch_comments(self, document_id: Hashable) -> List[Comment]:
        """Approved comments of *document_id*, in stored order."""
        self.comment_fetches += 1
        return [
            copy.deepcopy(c)
            for c in self._comments
            if c.document_id == document_id and c.approved
        ]


def load_documents_json(path: Path) -> InMemoryDocumentStore:
    """Build a store from a JSON file shaped like::

        {"documents": [{"id": 1, "content": "...", "comments": [{"id": 7, "content": "..."}]}]}
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise DocumentStoreError(f"cannot read documents from {path}: {exc}") from exc
    return documents_from_data(data)


def documents_from_data(data: Any) -> InMemoryDocumentStore:
    """Build a store from already decoded JSON data."""
    records = data.get("documents", []) if isinstance(data, dict) else data
    if not isinstance(records, list):
        raise DocumentStoreError("expected a list of documents")
    documents: List[Document] = []
    comments: List[Comment] = []
    for record in records:
        doc = _document_from_dict(record)
        documents.append(doc)
        raw_comments = record.get("comments", [])
        if not isinstance(raw_comments, list):
            raise DocumentStoreError(f"comments of document {doc.id!r} must be a list")
        for raw_comment in raw_comments:
            comments.append(_comment_from_dict(raw_comment, doc.id))
    return InMemoryDocumentStore(documents, comments)


# ---------------------------------------------------------------------------
# HTTP store
# ---------------------------------------------------------------------------

class HttpDocumentStore:
    """Read documents and comments from a REST endpoint."""

    def __init__(
        self,
        base_url: str,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 15.0,
    ) -> None:
        """
        Parameters
        ----------
        base_url:
            Root of the API, without trailing slash.
        session:
            Optional externally-managed :class:`aiohttp.ClientSession`.
            When *None* the store creates (and later closes) a private session.
        timeout:
            Total timeout in seconds for each request.
        """
        self.base_url: str = base_url.rstrip("/")
        self.timeout: float = timeout
        self._session: Optional[aiohttp.ClientSession] = session
        self._owns_session: bool = session is None

    async def __aenter__(self) -> "HttpDocumentStore":
        if self._owns_session:
            if self._session is None or self._session.closed:
                self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def fetch_documents(self) -> List[Document]:
        records = await self._get_json("/documents")
        if not isinstance(records, list):
            raise DocumentStoreError("expected a list of documents")
        return [_document_from_dict(r) for r in records]

    async def fetch_comments(self, document_id: Hashable) -> List[Comment]:
        records = await self._get_json(f"/documents/{document_id}/comments")
        if not isinstance(records, list):
            raise DocumentStoreError("expected a list of comments")
        comments = [_comment_from_dict(r, document_id) for r in records]
        return [c for c in comments if c.approved]

    async def _get_json(self, path: str) -> Any:
        if self._session is None:
            raise DocumentStoreError("HttpDocumentStore used outside 'async with'")
        url = self.base_url + path
        logger.debug("GET %s", url)
        try:
            async with self._session.get(
                url, timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as response:
                response.raise_for_status()
                return await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise DocumentStoreError(f"GET {url} failed: {exc}") from exc
