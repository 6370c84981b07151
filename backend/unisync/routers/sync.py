"""
Router pour la synchronisation offline → online.
Reçoit les opérations générées hors-ligne par l'app mobile et les rejoue une par une.
"""

from fastapi import APIRouter, Depends

from unisync.config import settings
from unisync.exceptions import ValidationError
from unisync.schemas.common import ApiResponse, success_response
from unisync.schemas.sync import SyncRequest, SyncResult, SyncStatus
from unisync.security import get_current_user
from unisync.services import sync_service
from unisync.store import DocumentStore, get_store

router = APIRouter(prefix="/api/sync", tags=["Synchronisation offline"])


@router.post(
    "/pending",
    response_model=ApiResponse[SyncResult],
    summary="Synchroniser les opérations en attente (offline → online)",
)
def sync_pending(
    data: SyncRequest,
    store: DocumentStore = Depends(get_store),
    user: dict = Depends(get_current_user),
):
    """
    Reçoit un batch d'opérations CREATE / UPDATE / DELETE et les applique une par une.

    Comportement :
    - Une opération en échec (type inconnu, document absent…) est listée dans `errors`
      sans bloquer les autres
    - Rejouer une opération déjà appliquée est idempotent
    - Retourne le rapport : synced / failed / results / errors

    Retourne 400 si `operations` est absent ou n'est pas un tableau.
    """
    if len(data.operations) > settings.SYNC_MAX_BATCH_SIZE:
        raise ValidationError(
            f"Batch too large: at most {settings.SYNC_MAX_BATCH_SIZE} operations per request"
        )

    result = sync_service.reconcile(store, data.operations)
    sync_service.record_sync(store, user["id"])
    return success_response(result, f"Synced {result.synced} operations")


@router.get(
    "/status",
    response_model=ApiResponse[SyncStatus],
    summary="Statut de synchronisation de l'utilisateur",
)
def sync_status(
    store: DocumentStore = Depends(get_store),
    user: dict = Depends(get_current_user),
):
    """Retourne l'heure de la dernière synchronisation de l'utilisateur connecté."""
    return success_response(sync_service.get_sync_status(store, user["id"]))
