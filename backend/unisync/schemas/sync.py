"""
Schémas Pydantic pour la synchronisation offline → online.
Endpoints : POST /api/sync/pending, GET /api/sync/status
"""

from typing import Any, Dict, List, Optional

from unisync.schemas.common import CamelModel

VALID_OPERATIONS = {"CREATE", "UPDATE", "DELETE"}


class SyncOperation(CamelModel):
    """
    Une opération générée côté client en mode offline.

    Validée élément par élément dans sync_service.reconcile : une opération incomplète
    ou mal typée échoue seule dans le rapport, sans rejeter le batch entier.
    """

    operation: Optional[str] = None     # CREATE, UPDATE, DELETE
    entity_type: Optional[str] = None   # Announcement, Assignment, Attendance…
    entity_id: Optional[str] = None
    entity_data: Optional[Dict[str, Any]] = None


class SyncRequest(CamelModel):
    """Corps de la requête batch de synchronisation."""

    operations: List[Any]         # Chaque élément est validé individuellement (SyncOperation)


class OperationResult(CamelModel):
    operation: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    status: str = "success"


class OperationError(CamelModel):
    # Valeurs renvoyées telles que reçues, même mal typées
    operation: Any = None
    entity_type: Any = None
    entity_id: Any = None
    error: str


class SyncResult(CamelModel):
    """Rapport de synchronisation : une entrée (succès ou erreur) par opération reçue."""

    synced: int
    failed: int
    results: List[OperationResult]
    errors: List[OperationError]


class SyncStatus(CamelModel):
    user_id: str
    last_sync_time: int           # Epoch ms, 0 si jamais synchronisé
    is_online: bool = True
