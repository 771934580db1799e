"""Configuración central de la aplicación (Pydantic Settings).

- Carga variables desde .env en la raíz del repositorio.
- Agrupa ajustes por área: App, CORS, Mongo, Auth/JWT, Storage, Límites.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AliasChoices, Field
from pathlib import Path

# Resuelve el .env ubicado en la raíz del repo (independiente del CWD)
ENV_FILE = Path(__file__).resolve().parents[2] / ".env"

ALLOWED_MIMETYPES = [
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/gif",
    "text/plain",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
]


class Settings(BaseSettings):
    """Conjunto de variables de configuración con valores por defecto razonables.

    Nota: los valores pueden sobreescribirse vía variables de entorno (.env).
    """
    # App
    app_name: str = "NoteHub API"
    api_prefix: str = "/api"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    cors_allow_any: bool = False  # Permite todos los orígenes (usa con cuidado)

    # Mongo
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "notehub"
    mongo_tls: bool = False
    # TLS relax options (dev only)
    mongo_tls_insecure: bool = False
    mongo_tls_allow_invalid_hostnames: bool = False

    # Auth / JWT
    jwt_secret: str | None = None
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    login_rate_per_min: int = 10

    # Storage: "gridfs" (por defecto) o "r2"
    storage_provider: str = "gridfs"
    gridfs_bucket: str = "uploads"
    r2_bucket: str | None = None
    r2_endpoint: str | None = None
    r2_region: str = "auto"
    r2_access_key: str | None = None
    r2_secret_key: str | None = None
    r2_prefix: str = "uploads/"

    # Límites de subida
    max_upload_bytes: int = 10 * 1024 * 1024
    max_files_per_upload: int = 5
    allowed_mimetypes: list[str] = Field(default_factory=lambda: list(ALLOWED_MIMETYPES))

    # Paginación
    default_page_size: int = 20
    max_page_size: int = 100
    popular_page_size: int = 10

    # Reintentos de escritura compare-and-swap sobre notas
    note_write_retries: int = Field(
        3,
        validation_alias=AliasChoices("NOTEHUB_WRITE_RETRIES", "NOTE_WRITE_RETRIES"),
    )

    # --- Utilidades derivadas / helpers ---
    @property
    def api_prefix_normalized(self) -> str:
        """Devuelve `api_prefix` con formato consistente.

        - Siempre inicia con '/'
        - Sin '/' final (excepto cuando es solo '/')
        - Si está vacío, devuelve ""
        """
        pref = (self.api_prefix or "").strip()
        if not pref:
            return ""
        if not pref.startswith('/'):
            pref = '/' + pref
        if len(pref) > 1 and pref.endswith('/'):
            pref = pref[:-1]
        return pref

    @property
    def r2_configured(self) -> bool:
        return bool(self.r2_bucket and self.r2_endpoint and self.r2_access_key and self.r2_secret_key)

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # no fallar si hay variables no usadas
    )


settings = Settings()
