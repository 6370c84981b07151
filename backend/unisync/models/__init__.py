# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata
# avant l'appel à Base.metadata.create_all().

from unisync.models.document import Document  # noqa: F401
