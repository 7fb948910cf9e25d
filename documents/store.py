"""
documents/store.py -- SQLAlchemy-backed persistence for documents and audits.

Uses SQLAlchemy Core (not ORM) so the dataclasses in core/models.py remain the
authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change, not a rewrite.

Pattern: Repository + Data Mapper. DocumentStore is the repository; the
_row_to_* functions are the mappers. Route handlers never touch SQL directly.

The store enforces data shape only. Who may read or change what is decided by
core/policy.py before any of these methods is called.

Audit submissions:
  One row per (doc_id, auditor_id), enforced by a UNIQUE constraint. Writes go
  through upsert_audit_submission(), which overwrites the auditor's previous
  payload wholesale (last writer wins). auditor_username is copied onto the
  row at write time so listings need no join against the auth database.

  Submissions are returned in insertion order of the (doc_id, auditor_id)
  row; a re-submission keeps its original position.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = DocumentStore("sqlite:///openaudit_docs.db")
    doc = store.create_document(Document(owner_id=user.id, title="Privacy policy"))
    store.upsert_audit_submission(doc.id, auditor.id, auditor.username, items)
    submissions = store.get_audit_submissions(doc.id)
    store.close()
"""

import json
from typing import Optional

from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from core.db import make_engine
from core.ids import new_id, now_iso
from core.models import AuditItem, AuditSubmission, Document, Visibility
from core.validation import dump_items, load_stored_items

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_documents = Table(
    "documents",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("owner_id", String(32), nullable=False, index=True),
    Column("title", String(300), nullable=False, server_default=""),
    Column("content", Text, nullable=False),  # JSON
    Column("visibility", String(10), nullable=False, server_default="private"),
    Column("allow_audit", Integer, nullable=False, server_default="0"),
    Column("alias", String(100), unique=True),
    Column("featured", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_audits = Table(
    "audits",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("doc_id", String(32), nullable=False, index=True),
    Column("auditor_id", String(32), nullable=False, index=True),
    Column("auditor_username", String(39), nullable=False),
    Column("data", Text, nullable=False),  # JSON {item_id: {description, status, updated}}
    Column("updated_at", String(32), nullable=False),
    UniqueConstraint("doc_id", "auditor_id", name="uq_doc_auditor"),
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class DocumentStore:
    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def create_document(self, doc: Document) -> Document:
        """Insert a document and return it with id and timestamps assigned."""
        doc.id = doc.id or new_id()
        doc.created_at = doc.updated_at = now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                _documents.insert().values(
                    id=doc.id,
                    owner_id=doc.owner_id,
                    title=doc.title,
                    content=json.dumps(doc.content),
                    visibility=doc.visibility.value,
                    allow_audit=1 if doc.allow_audit else 0,
                    alias=doc.alias,
                    featured=1 if doc.featured else 0,
                    created_at=doc.created_at,
                    updated_at=doc.updated_at,
                )
            )
            conn.commit()
        return doc

    def get_document(self, doc_id: str) -> Optional[Document]:
        with self.engine.connect() as conn:
            row = conn.execute(_documents.select().where(_documents.c.id == doc_id)).fetchone()
        return _row_to_document(row) if row is not None else None

    def get_by_alias(self, alias: str) -> Optional[Document]:
        """Look up a document by alias. Aliases are stored lower-case."""
        with self.engine.connect() as conn:
            row = conn.execute(_documents.select().where(_documents.c.alias == alias.lower())).fetchone()
        return _row_to_document(row) if row is not None else None

    def list_owned(self, owner_id: str) -> list[Document]:
        """Every document owned by owner_id, any visibility, newest change first."""
        return self._list(_documents.c.owner_id == owner_id)

    def list_public(self, owner_id: str) -> list[Document]:
        """owner_id's public documents. Unlisted documents are never listed."""
        return self._list((_documents.c.owner_id == owner_id) & (_documents.c.visibility == Visibility.PUBLIC.value))

    def list_featured(self) -> list[Document]:
        return self._list((_documents.c.featured == 1) & (_documents.c.visibility == Visibility.PUBLIC.value))

    def _list(self, where) -> list[Document]:
        with self.engine.connect() as conn:
            rows = conn.execute(_documents.select().where(where).order_by(_documents.c.updated_at.desc())).fetchall()
        return [_row_to_document(r) for r in rows]

    def update_document(
        self,
        doc_id: str,
        *,
        title: str,
        content: object,
        visibility: Visibility,
        allow_audit: bool,
    ) -> Optional[Document]:
        """Overwrite the editable fields of a document. Returns None if it does not exist."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _documents.update()
                .where(_documents.c.id == doc_id)
                .values(
                    title=title,
                    content=json.dumps(content),
                    visibility=visibility.value,
                    allow_audit=1 if allow_audit else 0,
                    updated_at=now_iso(),
                )
            )
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_document(doc_id)

    def set_alias(self, doc_id: str, alias: Optional[str]) -> Optional[Document]:
        """Set or clear (alias=None) a document's alias.

        Raises sqlalchemy.exc.IntegrityError if another document already uses
        the alias. Returns None if the document does not exist.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _documents.update()
                .where(_documents.c.id == doc_id)
                .values(alias=alias.lower() if alias else None, updated_at=now_iso())
            )
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_document(doc_id)

    def set_featured(self, doc_id: str, featured: bool) -> bool:
        """Curator toggle for the featured listing. Returns False if the document does not exist."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _documents.update().where(_documents.c.id == doc_id).values(featured=1 if featured else 0)
            )
            conn.commit()
        return result.rowcount > 0

    def delete_document(self, doc_id: str) -> bool:
        """Delete a document together with every audit submitted on it."""
        with self.engine.begin() as conn:
            conn.execute(_audits.delete().where(_audits.c.doc_id == doc_id))
            result = conn.execute(_documents.delete().where(_documents.c.id == doc_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Audit submissions
    # ------------------------------------------------------------------

    def get_audit_submissions(self, doc_id: str) -> list[AuditSubmission]:
        """All submissions on doc_id in stable retrieval order."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _audits.select().where(_audits.c.doc_id == doc_id).order_by(_audits.c.id)
            ).fetchall()
        return [_row_to_submission(r) for r in rows]

    def get_audit(self, doc_id: str, auditor_id: str) -> Optional[AuditSubmission]:
        with self.engine.connect() as conn:
            row = conn.execute(
                _audits.select().where((_audits.c.doc_id == doc_id) & (_audits.c.auditor_id == auditor_id))
            ).fetchone()
        return _row_to_submission(row) if row is not None else None

    def upsert_audit_submission(
        self,
        doc_id: str,
        auditor_id: str,
        auditor_username: str,
        items: dict[str, AuditItem],
    ) -> AuditSubmission:
        """Create or replace auditor_id's submission on doc_id.

        Update-then-insert inside one transaction. If a concurrent request from
        the same auditor wins the INSERT, the UNIQUE constraint fires and the
        write is retried as an UPDATE -- either way the last writer's payload
        is what remains.
        """
        values = {
            "auditor_username": auditor_username,
            "data": json.dumps(dump_items(items)),
            "updated_at": now_iso(),
        }
        match = (_audits.c.doc_id == doc_id) & (_audits.c.auditor_id == auditor_id)
        try:
            with self.engine.begin() as conn:
                result = conn.execute(_audits.update().where(match).values(**values))
                if result.rowcount == 0:
                    conn.execute(_audits.insert().values(doc_id=doc_id, auditor_id=auditor_id, **values))
        except IntegrityError:
            with self.engine.begin() as conn:
                conn.execute(_audits.update().where(match).values(**values))
        return self.get_audit(doc_id, auditor_id)

    def list_audits_by_auditor(self, auditor_id: str, *, public_only: bool) -> list[AuditSubmission]:
        """Submissions made by auditor_id, restricted by the audited document's visibility.

        public_only=True  -- only audits on public documents (profile listing)
        public_only=False -- audits on public and unlisted documents (the
                             auditor's own listing); private documents are
                             always excluded
        """
        allowed = [Visibility.PUBLIC.value] if public_only else [Visibility.PUBLIC.value, Visibility.UNLISTED.value]
        stmt = (
            select(_audits)
            .join(_documents, _documents.c.id == _audits.c.doc_id)
            .where((_audits.c.auditor_id == auditor_id) & (_documents.c.visibility.in_(allowed)))
            .order_by(_audits.c.updated_at.desc())
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_submission(r) for r in rows]

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            conn.execute(select(_documents.c.id).limit(1)).fetchall()
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_document(row) -> Document:
    return Document(
        id=row.id,
        owner_id=row.owner_id,
        title=row.title or "",
        content=json.loads(row.content),
        visibility=Visibility(row.visibility),
        allow_audit=bool(row.allow_audit),
        alias=row.alias,
        featured=bool(row.featured),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_submission(row) -> AuditSubmission:
    return AuditSubmission(
        id=row.id,
        doc_id=row.doc_id,
        auditor_id=row.auditor_id,
        auditor_username=row.auditor_username,
        data=load_stored_items(json.loads(row.data)),
        updated_at=row.updated_at,
    )
