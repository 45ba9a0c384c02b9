"""Dependency container wiring for the application."""

from dataclasses import dataclass

from supabase import create_client

from image_optimizer.adapters.local_session_store import LocalSessionStore
from image_optimizer.adapters.pillow_transformer import PillowWebpTransformer
from image_optimizer.adapters.supabase_session_store import SupabaseSessionStore
from image_optimizer.config import Settings
from image_optimizer.services.archives import ArchiveService
from image_optimizer.services.batches import BatchService
from image_optimizer.services.naming import NamingAuthority
from image_optimizer.services.sessions import SessionService, SessionStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session_service: SessionService
    batch_service: BatchService
    archive_service: ArchiveService


def build_session_store(settings: Settings) -> SessionStore:
    """Create the session store selected by settings."""
    if settings.storage_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_SERVICE_KEY are required "
                "for the supabase storage backend"
            )
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseSessionStore(client=client, bucket=settings.supabase_bucket)
    return LocalSessionStore(root=settings.output_dir)


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    store = build_session_store(resolved_settings)
    session_service = SessionService(store=store, naming=NamingAuthority())
    transformer = PillowWebpTransformer(
        max_width=resolved_settings.max_width,
        max_height=resolved_settings.max_height,
        quality=resolved_settings.webp_quality,
    )
    batch_service = BatchService(
        session_service=session_service,
        transformer=transformer,
        public_url_prefix=resolved_settings.public_url_prefix,
        max_upload_bytes=resolved_settings.max_upload_bytes,
    )
    archive_service = ArchiveService(store)
    return AppContainer(
        settings=resolved_settings,
        session_service=session_service,
        batch_service=batch_service,
        archive_service=archive_service,
    )
