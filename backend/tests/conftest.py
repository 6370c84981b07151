"""
Configuration partagée pour tous les tests.
Le magasin de documents tourne sur SQLite en mémoire : aucune connexion à PostgreSQL.
"""

import os

# Avant tout import de unisync : le moteur de l'application est créé à l'import
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import unisync.models  # noqa: F401  (enregistre les modèles dans Base.metadata)
from unisync.database import Base
from unisync.main import app
from unisync.security import get_current_user
from unisync.store import SqlDocumentStore, get_store


@pytest.fixture
def db_session():
    """Session SQLAlchemy sur une base SQLite en mémoire, recréée pour chaque test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def store(db_session):
    return SqlDocumentStore(db_session)


@pytest.fixture
def current_user(store):
    """Utilisateur connecté (modifiable par le test, p.ex. current_user["role"] = "STUDENT")."""
    user = {"id": "L1", "role": "LECTURER", "email": "lecturer@uni.test"}
    store.set("users", "L1", {"role": "LECTURER", "email": "lecturer@uni.test"})
    return user


@pytest.fixture
def client(store, current_user):
    """Client HTTP de test : magasin en mémoire, authentification court-circuitée."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_current_user] = lambda: current_user
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth_client(store):
    """Client HTTP de test avec la vraie vérification des tokens JWT."""
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
