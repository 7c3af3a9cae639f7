"""
hundy.services.document_store - Locked Read-Modify-Write over Documents
========================================================================

Every component works on whole documents: read a snapshot, mutate it in
memory, write it back.  Two guards keep that from losing updates:

* an ``asyncio.Lock`` per document name, held across the whole
  read-modify-write inside :meth:`DocumentStore.edit`, so two handlers in
  this process can't interleave on the same document;
* a ``revision`` compare-and-swap in :func:`save_document`, so a writer in
  another process (a migration script, the OAuth linking server) makes the
  losing write fail loudly with :class:`StaleDocument` instead of
  overwriting.

Usage::

    async with store.edit(DocumentName.TICKETS) as tickets:
        tickets[str(channel.id)] = {"userId": str(user.id), "status": "open"}
    # written back here; an exception inside the block discards the change
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy import Engine, update
from sqlalchemy.exc import IntegrityError

from hundy.database.engine import get_session, run_db
from hundy.database.models import Document
from hundy.database.seed import default_body
from hundy.errors import StaleDocument

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DocumentSnapshot:
    """A detached copy of a document plus the revision it was read at."""

    name: str
    body: dict
    revision: int


# ---------------------------------------------------------------------------
# Sync helpers (run via run_db)
# ---------------------------------------------------------------------------
def load_document(engine: Engine, name: str) -> DocumentSnapshot:
    """Read document *name*; a missing row yields the default at revision 0."""
    name = str(name)
    with get_session(engine) as session:
        row = session.get(Document, name)
        if row is None:
            return DocumentSnapshot(name=name, body=default_body(name), revision=0)
        return DocumentSnapshot(
            name=name, body=copy.deepcopy(row.body or {}), revision=row.revision
        )


def save_document(engine: Engine, name: str, body: dict, expected_revision: int) -> int:
    """Write *body* if the stored revision still equals *expected_revision*.

    Returns the new revision.  Raises :class:`StaleDocument` when another
    writer got there first; nothing is written in that case.
    """
    name = str(name)
    try:
        with get_session(engine) as session:
            if expected_revision == 0:
                if session.get(Document, name) is not None:
                    raise StaleDocument()
                session.add(Document(name=name, body=copy.deepcopy(body), revision=1))
                session.flush()
                return 1

            result = session.execute(
                update(Document)
                .where(Document.name == name, Document.revision == expected_revision)
                .values(body=copy.deepcopy(body), revision=expected_revision + 1)
            )
            if result.rowcount != 1:
                raise StaleDocument()
            return expected_revision + 1
    except IntegrityError as exc:
        # Concurrent first insert of the same document
        raise StaleDocument() from exc


# ---------------------------------------------------------------------------
# Async facade
# ---------------------------------------------------------------------------
class DocumentStore:
    """Async access to the named documents with per-document locking."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def lock_for(self, name: str) -> asyncio.Lock:
        return self._locks[str(name)]

    async def read(self, name: str) -> dict:
        """Return a snapshot copy of document *name*."""
        snapshot = await run_db(load_document, self.engine, str(name))
        return snapshot.body

    @asynccontextmanager
    async def edit(self, name: str) -> AsyncIterator[dict]:
        """Hold the document lock, yield the body, write it back on exit."""
        name = str(name)
        async with self._locks[name]:
            snapshot = await run_db(load_document, self.engine, name)
            yield snapshot.body
            revision = await run_db(
                save_document, self.engine, name, snapshot.body, snapshot.revision
            )
            logger.debug("Saved document %s at revision %d", name, revision)
