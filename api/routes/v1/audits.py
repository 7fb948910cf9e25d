"""
api/routes/v1/audits.py -- Audit submission and aggregated report routes.

Routes:
  GET /docs/{doc_id}/audits          -- aggregated report (public/unlisted docs)
  GET /docs/{doc_id}/audits/private  -- aggregated report for the owner
  PUT /docs/{doc_id}/audit           -- create or replace the caller's submission
  GET /docs/{doc_id}/audit           -- the caller's own submission, or null
  GET /audits/mine                   -- caller's audits on non-private docs
  GET /users/{user_id}/audits        -- a user's audits on public docs

Report shape:
  {item_id: {"pass": [{username, description, updated}, ...], "fail": [...]}}
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request

from api.deps import authorize, document_store, load_document, unwrap
from api.models import AuditResponse, AuditUpsert
from auth.dependencies import get_current_user, try_get_current_user
from auth.models import User
from core.aggregator import aggregate, report_to_dict
from core.models import Action
from core.validation import parse_audit_payload

logger = logging.getLogger("openaudit.api.audits")

router = APIRouter()


@router.get("/docs/{doc_id}/audits")
def get_report(
    request: Request,
    doc_id: str,
    current_user: User | None = Depends(try_get_current_user),
) -> dict:
    doc = load_document(request, doc_id)
    authorize(current_user, doc, Action.LIST)
    return report_to_dict(aggregate(document_store(request).get_audit_submissions(doc_id)))


@router.get("/docs/{doc_id}/audits/private")
def get_owner_report(
    request: Request,
    doc_id: str,
    current_user: User | None = Depends(try_get_current_user),
) -> dict:
    """Aggregated report for the document's owner, whatever its visibility."""
    doc = load_document(request, doc_id)
    authorize(current_user, doc, Action.LIST_AUDITS_AS_OWNER)
    return report_to_dict(aggregate(document_store(request).get_audit_submissions(doc_id)))


@router.put("/docs/{doc_id}/audit", response_model=AuditResponse)
def submit_audit(
    request: Request,
    doc_id: str,
    body: AuditUpsert,
    current_user: User = Depends(get_current_user),
) -> AuditResponse:
    """Create or replace the caller's submission on a document.

    The payload is validated before the document is looked at, so a malformed
    body is reported as such even for a document the caller may not audit.
    """
    items = unwrap(parse_audit_payload(body.data))
    doc = load_document(request, doc_id)
    authorize(current_user, doc, Action.SUBMIT_AUDIT)
    submission = document_store(request).upsert_audit_submission(doc_id, current_user.id, current_user.username, items)
    logger.info("Audit on %s saved by user %s (%d items)", doc_id, current_user.id, len(items))
    return AuditResponse.from_submission(submission)


@router.get("/docs/{doc_id}/audit", response_model=Optional[AuditResponse])
def get_own_audit(
    request: Request,
    doc_id: str,
    current_user: User | None = Depends(try_get_current_user),
) -> Optional[AuditResponse]:
    doc = load_document(request, doc_id)
    authorize(current_user, doc, Action.READ_OWN_AUDIT)
    submission = document_store(request).get_audit(doc_id, current_user.id)
    return AuditResponse.from_submission(submission) if submission is not None else None


@router.get("/audits/mine", response_model=list[AuditResponse])
def list_my_audits(request: Request, current_user: User = Depends(get_current_user)) -> list[AuditResponse]:
    submissions = document_store(request).list_audits_by_auditor(current_user.id, public_only=False)
    return [AuditResponse.from_submission(s) for s in submissions]


@router.get("/users/{user_id}/audits", response_model=list[AuditResponse])
def list_user_audits(request: Request, user_id: str) -> list[AuditResponse]:
    submissions = document_store(request).list_audits_by_auditor(user_id, public_only=True)
    return [AuditResponse.from_submission(s) for s in submissions]
