"""
Modèle SQLAlchemy du magasin de documents.

Chaque ligne est un document JSON adressé par (collection, id), à la manière
des collections Firestore de l'application mobile :
- data       : contenu du document (champs camelCase, timestamps en epoch ms)
- unique_key : clé métier dérivée de certains champs, NULL si la collection n'en déclare pas
"""

from sqlalchemy import JSON, Column, DateTime, String, UniqueConstraint, func

from unisync.database import Base


class Document(Base):
    """Document JSON d'une collection (annonces, présences, QR codes, utilisateurs…)."""
    __tablename__ = "documents"
    __table_args__ = (
        # Garantit p.ex. une seule présence par (élève, cours, séance)
        UniqueConstraint("collection", "unique_key", name="uq_documents_collection_unique_key"),
    )

    collection = Column(String(100), primary_key=True)
    id = Column(String(255), primary_key=True)
    data = Column(JSON, nullable=False)
    unique_key = Column(String(512), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
