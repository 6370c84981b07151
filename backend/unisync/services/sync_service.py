"""
Service de synchronisation offline → online.

Stratégie : rejeu séquentiel, opération par opération
- Chaque opération est appliquée et validée indépendamment : un échec n'annule pas
  les opérations précédentes et n'empêche pas les suivantes
- CREATE remplace le document (last-write-wins), UPDATE fusionne les champs,
  DELETE est sans effet sur un document absent → rejouer une opération est idempotent
- Chaque opération reçue produit exactement une entrée : résultat OU erreur
"""

import logging
import time
from typing import Any, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from unisync.exceptions import UniSyncError, ValidationError
from unisync.schemas.sync import (
    VALID_OPERATIONS,
    OperationError,
    OperationResult,
    SyncOperation,
    SyncResult,
    SyncStatus,
)
from unisync.store import DocumentStore

logger = logging.getLogger(__name__)

# Types d'entités synchronisables → collection du magasin de documents
ENTITY_COLLECTIONS = {
    "Announcement": "announcements",
    "Assignment": "assignments",
    "Attendance": "attendance",
    "Timetable": "timetables",
    "NetworkPost": "networkPosts",
    "Message": "messages",
}

USERS = "users"


def _now_ms() -> int:
    return int(time.time() * 1000)


def get_collection_name(entity_type: Optional[str]) -> str:
    """Retourne la collection d'un type d'entité. Lève ValidationError s'il n'est pas synchronisable."""
    try:
        return ENTITY_COLLECTIONS[entity_type]
    except KeyError:
        raise ValidationError(f"Unknown entity type: {entity_type}")


def _describe(raw: Any) -> Tuple[Any, Any, Any]:
    """Retourne (operation, entityType, entityId) tels que reçus, pour le rapport."""
    if isinstance(raw, SyncOperation):
        return raw.operation, raw.entity_type, raw.entity_id
    if isinstance(raw, dict):
        return raw.get("operation"), raw.get("entityType"), raw.get("entityId")
    return None, None, None


def _parse_operation(raw: Any) -> SyncOperation:
    """Valide un élément du batch. Lève ValidationError pour cet élément seulement."""
    if isinstance(raw, SyncOperation):
        return raw
    if not isinstance(raw, dict):
        raise ValidationError("Operation must be an object")
    if raw.get("operation") not in VALID_OPERATIONS:
        raise ValidationError("Unknown operation")
    try:
        return SyncOperation.model_validate(raw)
    except PydanticValidationError as exc:
        err = exc.errors()[0]
        field = ".".join(str(p) for p in err["loc"])
        raise ValidationError(f"{field}: {err['msg']}")


def _apply(store: DocumentStore, op: SyncOperation, now: int) -> None:
    if op.operation not in VALID_OPERATIONS:
        raise ValidationError("Unknown operation")
    if not op.entity_type:
        raise ValidationError("entityType is required")
    if not op.entity_id:
        raise ValidationError("entityId is required")

    collection = get_collection_name(op.entity_type)

    if op.operation == "CREATE":
        data = {**(op.entity_data or {}), "id": op.entity_id, "isSynced": True, "lastSyncTime": now}
        store.set(collection, op.entity_id, data)
    elif op.operation == "UPDATE":
        data = {**(op.entity_data or {}), "isSynced": True, "lastSyncTime": now}
        data.pop("id", None)  # l'identifiant d'une entité ne change jamais
        store.update(collection, op.entity_id, data)
    else:
        store.delete(collection, op.entity_id)


def reconcile(
    store: DocumentStore,
    operations: List[Any],
    now: Optional[int] = None,
) -> SyncResult:
    """
    Rejoue en séquence les opérations reçues depuis l'app mobile.

    Pour chaque opération :
    1. Valide l'élément (objet, type d'opération CREATE / UPDATE / DELETE, types des champs)
    2. Résout la collection cible depuis entityType (liste fermée)
    3. Applique l'opération sur le magasin de documents
    4. Succès → `results`, échec → `errors` avec le message ; le batch continue

    Garantit synced + failed == len(operations).
    """
    now = now if now is not None else _now_ms()
    results: List[OperationResult] = []
    errors: List[OperationError] = []

    for raw in operations:
        operation, entity_type, entity_id = _describe(raw)
        try:
            _apply(store, _parse_operation(raw), now)
        except Exception as exc:
            # Erreur métier ou magasin : l'opération échoue seule
            reason = exc.error if isinstance(exc, UniSyncError) else str(exc)
            logger.warning(
                "Opération %s %s/%s en échec : %s",
                operation, entity_type, entity_id, reason,
            )
            errors.append(OperationError(
                operation=operation,
                entity_type=entity_type,
                entity_id=entity_id,
                error=reason,
            ))
            continue

        results.append(OperationResult(
            operation=operation,
            entity_type=entity_type,
            entity_id=entity_id,
        ))

    logger.info(
        "Sync : %d reçues, %d appliquées, %d en échec",
        len(operations), len(results), len(errors),
    )

    return SyncResult(
        synced=len(results),
        failed=len(errors),
        results=results,
        errors=errors,
    )


def record_sync(store: DocumentStore, user_id: str, now: Optional[int] = None) -> None:
    """Enregistre l'heure de la dernière synchronisation sur le document utilisateur."""
    store.update(USERS, user_id, {"lastSyncTime": now if now is not None else _now_ms()})


def get_sync_status(store: DocumentStore, user_id: str) -> SyncStatus:
    """Retourne l'heure de dernière synchronisation de l'utilisateur (0 si jamais synchronisé)."""
    user = store.get(USERS, user_id) or {}
    return SyncStatus(user_id=user_id, last_sync_time=user.get("lastSyncTime") or 0)
