"""
Magasin de documents : unique frontière de persistance des services UniSync.

Les services reçoivent toujours le magasin en paramètre (dépendance FastAPI get_store),
jamais via un état global. L'implémentation SQL stocke chaque document dans la table
`documents` et applique les clés uniques déclarées par collection (UNIQUE_KEYS) :
une écriture qui les viole lève DuplicateKeyError au lieu d'écraser silencieusement.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Tuple

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from unisync.database import get_db
from unisync.exceptions import DocumentNotFound, DuplicateKeyError, InternalError
from unisync.models.document import Document

logger = logging.getLogger(__name__)

# Champs formant une clé métier unique, par collection
UNIQUE_KEYS: Dict[str, Tuple[str, ...]] = {
    "attendance": ("studentId", "courseId", "classDate"),
}


def compute_unique_key(collection: str, data: Mapping[str, Any]) -> Optional[str]:
    """
    Calcule la clé unique d'un document, ou None si la collection n'en déclare pas
    ou si l'un des champs est absent.
    """
    fields = UNIQUE_KEYS.get(collection)
    if not fields:
        return None
    values = [data.get(f) for f in fields]
    if any(v is None for v in values):
        return None
    return json.dumps(values, separators=(",", ":"))


class DocumentStore(ABC):
    """Collections de documents adressés par (collection, id)."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Retourne une copie du document, ou None s'il n'existe pas."""

    @abstractmethod
    def set(self, collection: str, doc_id: str, doc: Mapping[str, Any]) -> None:
        """Crée ou remplace entièrement le document."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, partial: Mapping[str, Any]) -> None:
        """Fusionne les champs fournis dans le document existant (DocumentNotFound sinon)."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Supprime le document ; sans effet s'il n'existe pas."""

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Retourne les documents dont les champs sont égaux aux filtres."""


def _field_equals(field: str, value: Any):
    """Construit la condition SQL `data.<field> == value` selon le type JSON de la valeur."""
    element = Document.data[field]
    if value is None:
        return element.as_string().is_(None)
    if isinstance(value, bool):
        return element.as_boolean() == value
    if isinstance(value, (int, float)):
        # as_float : les timestamps en ms dépassent un INTEGER 32 bits PostgreSQL
        return element.as_float() == float(value)
    return element.as_string() == str(value)


class SqlDocumentStore(DocumentStore):
    """Implémentation SQLAlchemy : une ligne de la table `documents` par document."""

    def __init__(self, db: Session):
        self.db = db

    def _row(self, collection: str, doc_id: str) -> Optional[Document]:
        return self.db.get(Document, (collection, doc_id))

    def _commit(self, collection: str, key: Optional[str]) -> None:
        # Chaque écriture est validée individuellement
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.debug("Violation de clé unique dans %s : %s", collection, key)
            raise DuplicateKeyError(collection, key)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Échec d'écriture dans %s : %s", collection, exc)
            raise InternalError(f"Store write failed in {collection}") from exc

    def get(self, collection, doc_id):
        row = self._row(collection, doc_id)
        return dict(row.data) if row is not None else None

    def set(self, collection, doc_id, doc):
        data = dict(doc)
        key = compute_unique_key(collection, data)
        row = self._row(collection, doc_id)
        if row is None:
            self.db.add(Document(collection=collection, id=doc_id, data=data, unique_key=key))
        else:
            row.data = data
            row.unique_key = key
        self._commit(collection, key or doc_id)

    def update(self, collection, doc_id, partial):
        row = self._row(collection, doc_id)
        if row is None:
            raise DocumentNotFound(collection, doc_id)
        data = {**row.data, **partial}
        key = compute_unique_key(collection, data)
        row.data = data
        row.unique_key = key
        self._commit(collection, key or doc_id)

    def delete(self, collection, doc_id):
        row = self._row(collection, doc_id)
        if row is None:
            return
        self.db.delete(row)
        self._commit(collection, doc_id)

    def query(self, collection, filters=None, order_by=None, descending=False, limit=None):
        stmt = select(Document).where(Document.collection == collection)
        for field, value in (filters or {}).items():
            stmt = stmt.where(_field_equals(field, value))
        if limit is not None and order_by is None:
            stmt = stmt.limit(limit)

        docs = [dict(row.data) for row in self.db.execute(stmt).scalars().all()]

        if order_by is not None:
            # Documents sans le champ de tri placés en fin de liste
            missing = [d for d in docs if d.get(order_by) is None]
            docs = sorted(
                (d for d in docs if d.get(order_by) is not None),
                key=lambda d: d[order_by],
                reverse=descending,
            ) + missing
            if limit is not None:
                docs = docs[:limit]
        return docs


def get_store(db: Session = Depends(get_db)) -> DocumentStore:
    """Dépendance FastAPI: magasin de documents lié à la session de la requête."""
    return SqlDocumentStore(db)
