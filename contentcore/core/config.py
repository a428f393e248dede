# contentcore/core/config.py
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import ContentError
from .settings import settings


async def content_error_handler(request: Request, exc: ContentError) -> JSONResponse:
    # {"detail", "code", **context} con el status del error
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)

    if settings.CORS_ORIGINS:
        origins = settings.CORS_ORIGINS
        allow_credentials = True
        if "*" in origins:
            origins = ["*"]
            allow_credentials = False
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=allow_credentials,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(ContentError, content_error_handler)
    return app
