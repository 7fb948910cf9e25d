"""
api/routes/v1/documents.py -- Document CRUD routes.

Routes (in registration order to avoid FastAPI path capture conflicts):
  POST   /docs                      -- create (requires auth)
  GET    /docs/featured             -- featured public documents
  GET    /docs/owned                -- caller's documents (requires auth)
  GET    /docs/by-alias/{alias}     -- fetch by alias
  GET    /docs/{doc_id}             -- fetch
  GET    /docs/{doc_id}/owned       -- fetch as owner
  PATCH  /docs/{doc_id}             -- update (owner)
  PUT    /docs/{doc_id}/alias       -- set alias (owner)
  DELETE /docs/{doc_id}/alias       -- clear alias (owner)
  DELETE /docs/{doc_id}             -- delete with its audits (owner)
  GET    /users/{user_id}/docs      -- a user's public documents

Access control:
  Every route that touches a single document runs core.policy.decide() on the
  fetched (or, for create/update, the proposed) document. Anonymous callers
  reach the policy as actor None, so the policy -- not the route -- decides
  whether a signed-in user is needed.
"""

from __future__ import annotations

from dataclasses import replace

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.exc import IntegrityError

from api.deps import authorize, document_store, load_document
from api.models import AliasUpdate, DocumentCreate, DocumentResponse, DocumentUpdate
from auth.dependencies import get_current_user, try_get_current_user
from auth.models import User
from core.errors import AppError, ErrorKind
from core.models import Action, Document, Visibility

router = APIRouter()


@router.post("/docs", response_model=DocumentResponse, status_code=201)
def create_document(
    request: Request,
    body: DocumentCreate,
    current_user: User | None = Depends(try_get_current_user),
) -> DocumentResponse:
    draft = Document(
        owner_id=current_user.id if current_user is not None else "",
        title=body.title,
        content=body.content,
        visibility=Visibility(body.visibility.value),
        allow_audit=body.allow_audit,
    )
    authorize(current_user, draft, Action.CREATE)
    return DocumentResponse.from_document(document_store(request).create_document(draft))


@router.get("/docs/featured", response_model=list[DocumentResponse])
def list_featured(request: Request) -> list[DocumentResponse]:
    return [DocumentResponse.from_document(d) for d in document_store(request).list_featured()]


@router.get("/docs/owned", response_model=list[DocumentResponse])
def list_owned(request: Request, current_user: User = Depends(get_current_user)) -> list[DocumentResponse]:
    return [DocumentResponse.from_document(d) for d in document_store(request).list_owned(current_user.id)]


@router.get("/docs/by-alias/{alias}", response_model=DocumentResponse)
def get_by_alias(
    request: Request,
    alias: str,
    current_user: User | None = Depends(try_get_current_user),
) -> DocumentResponse:
    doc = document_store(request).get_by_alias(alias)
    if doc is None:
        raise AppError.of(ErrorKind.DOCUMENT_NOT_FOUND)
    authorize(current_user, doc, Action.READ)
    return DocumentResponse.from_document(doc)


@router.get("/docs/{doc_id}", response_model=DocumentResponse)
def get_document(
    request: Request,
    doc_id: str,
    current_user: User | None = Depends(try_get_current_user),
) -> DocumentResponse:
    doc = load_document(request, doc_id)
    authorize(current_user, doc, Action.READ)
    return DocumentResponse.from_document(doc)


@router.get("/docs/{doc_id}/owned", response_model=DocumentResponse)
def get_owned_document(
    request: Request,
    doc_id: str,
    current_user: User | None = Depends(try_get_current_user),
) -> DocumentResponse:
    doc = load_document(request, doc_id)
    authorize(current_user, doc, Action.READ_OWNED)
    return DocumentResponse.from_document(doc)


@router.patch("/docs/{doc_id}", response_model=DocumentResponse)
def update_document(
    request: Request,
    doc_id: str,
    body: DocumentUpdate,
    current_user: User | None = Depends(try_get_current_user),
) -> DocumentResponse:
    """Replace title, content, visibility and allow_audit.

    The policy sees the proposed state, so private + allow_audit is rejected
    before the store is touched.
    """
    doc = load_document(request, doc_id)
    proposed = replace(
        doc,
        title=body.title,
        content=body.content,
        visibility=Visibility(body.visibility.value),
        allow_audit=body.allow_audit,
    )
    authorize(current_user, proposed, Action.UPDATE)
    updated = document_store(request).update_document(
        doc_id,
        title=proposed.title,
        content=proposed.content,
        visibility=proposed.visibility,
        allow_audit=proposed.allow_audit,
    )
    if updated is None:
        raise AppError.of(ErrorKind.DOCUMENT_NOT_FOUND)
    return DocumentResponse.from_document(updated)


@router.put("/docs/{doc_id}/alias", response_model=DocumentResponse)
def set_alias(
    request: Request,
    doc_id: str,
    body: AliasUpdate,
    current_user: User | None = Depends(try_get_current_user),
) -> DocumentResponse:
    return _write_alias(request, doc_id, body.alias, current_user)


@router.delete("/docs/{doc_id}/alias", response_model=DocumentResponse)
def clear_alias(
    request: Request,
    doc_id: str,
    current_user: User | None = Depends(try_get_current_user),
) -> DocumentResponse:
    return _write_alias(request, doc_id, None, current_user)


@router.delete("/docs/{doc_id}", status_code=204)
def delete_document(
    request: Request,
    doc_id: str,
    current_user: User | None = Depends(try_get_current_user),
) -> Response:
    doc = load_document(request, doc_id)
    authorize(current_user, doc, Action.DELETE)
    document_store(request).delete_document(doc_id)
    return Response(status_code=204)


@router.get("/users/{user_id}/docs", response_model=list[DocumentResponse])
def list_public(request: Request, user_id: str) -> list[DocumentResponse]:
    return [DocumentResponse.from_document(d) for d in document_store(request).list_public(user_id)]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_alias(request: Request, doc_id: str, alias: str | None, current_user: User | None) -> DocumentResponse:
    doc = load_document(request, doc_id)
    authorize(current_user, doc, Action.SET_ALIAS)
    try:
        updated = document_store(request).set_alias(doc_id, alias)
    except IntegrityError as exc:
        raise AppError.of(ErrorKind.ALIAS_TAKEN) from exc
    if updated is None:
        raise AppError.of(ErrorKind.DOCUMENT_NOT_FOUND)
    return DocumentResponse.from_document(updated)
