from __future__ import annotations

from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from contentcore.api.v1.router import api_router
from contentcore.core.config import create_app
from contentcore.core.logging import configure_logging
from contentcore.core.settings import settings

configure_logging(debug=settings.DEBUG)

app = create_app()
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

# API privada (X-User-Id lo resuelve el gateway de auth)
app.include_router(api_router, prefix=settings.API_V1_STR)
