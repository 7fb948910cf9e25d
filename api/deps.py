"""
api/deps.py -- Route-level helpers shared by the document and audit routers.

Every document operation follows the same three steps: fetch the document,
ask core.policy.decide(), and either continue or abort with the denial's
Failure. These helpers keep that sequence identical across routes.
"""

from __future__ import annotations

from typing import TypeVar

from fastapi import Request

from auth.models import User
from core.errors import AppError, ErrorKind, Failure
from core.models import Action, Document
from core.policy import decide
from documents.store import DocumentStore

T = TypeVar("T")


def unwrap(result: T | Failure) -> T:
    """Return a core operation's success value or abort the request with its Failure."""
    if isinstance(result, Failure):
        raise AppError(result)
    return result


def document_store(request: Request) -> DocumentStore:
    return request.app.state.document_store


def load_document(request: Request, doc_id: str) -> Document:
    doc = document_store(request).get_document(doc_id)
    if doc is None:
        raise AppError.of(ErrorKind.DOCUMENT_NOT_FOUND)
    return doc


def authorize(user: User | None, document: Document, action: Action) -> None:
    """Abort with the policy's denial reason unless user may perform action on document."""
    decision = decide(user.id if user is not None else None, document, action)
    if not decision:
        raise AppError(decision.failure())
