"""
Exceptions métier de l'API UniSync.

Les services lèvent ces exceptions ; les handlers de unisync.main les convertissent
en enveloppe JSON {success: false, data: null, message, error} avec le code HTTP associé.
Elles héritent de ValueError pour rester compatibles avec les appelants
qui interceptent déjà ValueError.
"""


class UniSyncError(ValueError):
    """Base de toutes les erreurs remontées au client."""

    status_code = 500

    def __init__(self, error: str, message: str = None):
        super().__init__(error)
        self.error = error
        self.message = message


class ValidationError(UniSyncError):
    """Entrée manquante ou mal formée."""
    status_code = 400


class ConflictError(UniSyncError):
    """Opération en conflit avec l'état existant (doublon)."""
    status_code = 400


class NotFoundError(UniSyncError):
    """Entité référencée introuvable."""
    status_code = 404


class AuthnError(UniSyncError):
    """Token absent, invalide ou expiré."""
    status_code = 401


class AuthzError(UniSyncError):
    """Rôle insuffisant pour l'opération demandée."""
    status_code = 403


class InternalError(UniSyncError):
    """Échec d'écriture du magasin de documents (hors violation de clé unique)."""

    status_code = 500


# --- Magasin de documents ---

class DocumentNotFound(NotFoundError):
    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"Document not found: {collection}/{doc_id}")
        self.collection = collection
        self.doc_id = doc_id


class DuplicateKeyError(ConflictError):
    def __init__(self, collection: str, unique_key: str):
        super().__init__(f"Duplicate key in {collection}: {unique_key}")
        self.collection = collection
        self.unique_key = unique_key


# --- QR codes de présence ---

class MalformedQrCode(ValidationError):
    def __init__(self, error: str = "Invalid QR code format"):
        super().__init__(error)


class QrCodeNotFound(NotFoundError):
    def __init__(self):
        super().__init__("Invalid QR code")


class QrCodeExpired(ValidationError):
    def __init__(self):
        super().__init__("QR code has expired")


class AlreadyMarked(ConflictError):
    def __init__(self):
        super().__init__("Attendance already marked for this class")
