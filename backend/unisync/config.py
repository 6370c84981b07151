"""
Configuration centrale de l'application via variables d'environnement.
Charger depuis un fichier .env en développement.
"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Base de données (PostgreSQL en production, SQLite en local)
    DATABASE_URL: str = "sqlite:///./unisync.db"

    # JWT
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # QR codes de présence
    QR_CODE_DEFAULT_DURATION_MINUTES: int = 15

    # Synchronisation offline
    SYNC_MAX_BATCH_SIZE: int = 500

    # CORS: vide = toutes origines localhost (développement)
    CORS_ORIGINS: List[str] = []

    # Environnement
    ENV: str = "development"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()
