"""Backend selection, performed once at process start."""
import logging
from typing import Optional

import config
from storage.base import StorageBackend
from storage.memory import MemoryStorage

logger = logging.getLogger(__name__)

BACKENDS = ("memory", "sql", "firestore")


def resolve_backend_name(
    requested: str,
    database_url: Optional[str],
    firebase_project_id: Optional[str]
) -> str:
    """Pick the backend name from explicit configuration or available credentials."""
    if requested != "auto":
        if requested not in BACKENDS:
            raise ValueError(f"Unknown STORAGE_BACKEND {requested!r}; expected one of {BACKENDS} or 'auto'")
        return requested
    if firebase_project_id:
        return "firestore"
    if database_url:
        return "sql"
    return "memory"


def create_sql_storage(database_url: str) -> StorageBackend:
    from database import create_db_engine
    from storage.sql import SQLStorage

    return SQLStorage(create_db_engine(database_url))


def create_firestore_client(
    project_id: str,
    client_email: Optional[str] = None,
    private_key: Optional[str] = None
):
    """
    Initialise the Firebase Admin SDK and return its Firestore client.

    Uses service-account credentials when both the client email and the private
    key are configured; otherwise relies on application default credentials
    (or ``FIRESTORE_EMULATOR_HOST``).
    """
    import firebase_admin
    from firebase_admin import credentials, firestore

    try:
        app = firebase_admin.get_app()
    except ValueError:
        options = {"projectId": project_id}
        if client_email and private_key:
            cred = credentials.Certificate({
                "type": "service_account",
                "project_id": project_id,
                "client_email": client_email,
                # Keys pasted into env vars usually carry escaped newlines
                "private_key": private_key.replace("\\n", "\n"),
                "token_uri": "https://oauth2.googleapis.com/token",
            })
            app = firebase_admin.initialize_app(cred, options)
        else:
            app = firebase_admin.initialize_app(options=options)

    return firestore.client(app)


def create_firestore_storage(project_id: str) -> StorageBackend:
    from storage.firestore import FirestoreStorage

    client = create_firestore_client(
        project_id,
        config.FIREBASE_CLIENT_EMAIL,
        config.FIREBASE_PRIVATE_KEY,
    )
    return FirestoreStorage(client, collection_prefix=config.FIREBASE_COLLECTION_PREFIX)


def create_storage(
    requested: Optional[str] = None,
    database_url: Optional[str] = None,
    firebase_project_id: Optional[str] = None
) -> StorageBackend:
    """
    Build the process-wide storage backend.

    In ``auto`` mode a Firestore initialisation failure falls back to in-memory
    storage; an explicitly requested backend that fails to start is fatal.
    """
    requested = (requested or config.STORAGE_BACKEND).lower()
    database_url = database_url if database_url is not None else config.DATABASE_URL
    firebase_project_id = firebase_project_id if firebase_project_id is not None else config.FIREBASE_PROJECT_ID

    name = resolve_backend_name(requested, database_url, firebase_project_id)

    if name == "sql":
        if not database_url:
            raise ValueError("STORAGE_BACKEND=sql requires DATABASE_URL")
        storage = create_sql_storage(database_url)
    elif name == "firestore":
        if not firebase_project_id:
            raise ValueError("STORAGE_BACKEND=firestore requires FIREBASE_PROJECT_ID")
        try:
            storage = create_firestore_storage(firebase_project_id)
        except Exception as e:
            if requested != "auto":
                raise
            logger.warning("Failed to initialize Firestore, falling back to memory storage", extra={
                "error": str(e)
            })
            storage = MemoryStorage()
    else:
        storage = MemoryStorage()

    logger.info("Storage backend initialized", extra={"backend": storage.name})
    return storage
