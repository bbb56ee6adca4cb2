"""Verifier Server.

Serves:
- Verified membership lists (/, /verified, /ss14verified)
- OAuth login flows against SpaceStation14 (/ss14wa) and Discord (/dwa)
- Health check (/health)

Sessions for the OAuth flows live in memory and are keyed by the client's
network address.
"""
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from supabase import create_client

from config import Settings, load_settings
from logging_config import setup_logging
from oauth.authenticator import ClientCredentials, SiteConfig
from oauth.endpoints import OAuthEndpoint, create_router as create_oauth_router
from oauth.errors import TransportError
from oauth.providers import DISCORD, SS14
from oauth.stores import MemorySessionStore, SessionStore
from verified.endpoints import VerifiedEndpoint, create_router as create_verified_router
from verified.storage import JsonFileStorage, StorageError, SupabaseStorage, VerifyListStorage

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def create_storages(settings: Settings) -> dict[str, VerifyListStorage]:
    """Storage for the ss13 and ss14 verified lists."""
    if settings.storage_type == "supabase":
        supabase = create_client(settings.supabase_url, settings.supabase_anon_key)
        return {
            "ss13": SupabaseStorage(supabase, "verify_list", ("ss13", "discord", "create_time")),
            "ss14": SupabaseStorage(supabase, "ss14_verify_list", ("discord", "ss14", "create_time")),
        }
    return {
        "ss13": JsonFileStorage(settings.json_path),
        "ss14": JsonFileStorage(settings.ss14_json_path),
    }


def create_oauth_endpoints(settings: Settings, sessions: SessionStore) -> list[OAuthEndpoint]:
    site = SiteConfig(
        web_address=settings.web_address,
        http_port=settings.http_port,
        resolved_ip=settings.resolved_ip,
        scheme=settings.web_scheme,
        substitute_loopback=settings.loopback_substitution,
        timeout=settings.oauth_timeout,
    )
    return [
        OAuthEndpoint(SS14, sessions, site, ClientCredentials(settings.ss14_client_id, settings.ss14_client_secret)),
        OAuthEndpoint(DISCORD, sessions, site, ClientCredentials(settings.dwa_client_id, settings.dwa_client_secret)),
    ]


def create_app(
    settings: Optional[Settings] = None,
    session_store: Optional[SessionStore] = None,
    storages: Optional[dict[str, VerifyListStorage]] = None,
) -> FastAPI:
    settings = settings if settings is not None else load_settings()
    settings.validate()
    sessions = session_store if session_store is not None else MemorySessionStore()
    storages = storages if storages is not None else create_storages(settings)

    logger.info(f"[STARTUP] Storage type: {settings.storage_type}")
    logger.info(f"[STARTUP] Public address: {settings.web_scheme}://{settings.web_address}:{settings.http_port}")

    app = FastAPI(
        title="Verifier Server",
        description="Verified membership lists and OAuth account linking",
        version=VERSION,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.sessions = sessions
    app.state.storages = storages

    @app.exception_handler(TransportError)
    async def transport_error_handler(request: Request, exc: TransportError):
        logger.error(f"[HTTP] Provider call failed on {request.url.path}: {exc}", exc_info=exc)
        return PlainTextResponse("Internal Server Error", status_code=500)

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error(f"[HTTP] Storage failure on {request.url.path}: {exc}", exc_info=exc)
        return PlainTextResponse("Internal Server Error", status_code=500)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "verifier-server", "storage": settings.storage_type}

    app.include_router(create_verified_router([
        VerifiedEndpoint(storages["ss13"], settings.token, "ss13", paths=("/", "/verified")),
        VerifiedEndpoint(storages["ss14"], settings.token, "ss14", paths=("/ss14verified",)),
    ]))
    app.include_router(create_oauth_router(create_oauth_endpoints(settings, sessions)))

    return app


def run() -> None:
    import uvicorn

    settings = load_settings()
    setup_logging(settings.log_level, settings.log_json)
    app = create_app(settings)
    logger.info(f"Starting verifier server on {settings.host_addr}:{settings.host_port}")
    uvicorn.run(app, host=settings.host_addr, port=settings.host_port)


# ============== Main Entry Point ==============

if __name__ == "__main__":
    run()
