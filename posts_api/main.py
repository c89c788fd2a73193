import os
import logging
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pythonjsonlogger import jsonlogger
from starlette.exceptions import HTTPException as StarletteHTTPException
from posts_api.database import build_store
from posts_api.routes import post
from posts_api.store import PostStore

# setup structured logging
logger = logging.getLogger("posts_api")
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)
logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())


def create_app(store: Optional[PostStore] = None) -> FastAPI:
    app = FastAPI(title="Posts API")
    app.state.store = store
    app.include_router(post.router, prefix="/api/posts", tags=["Posts"])

    @app.on_event("startup")
    def startup():
        if app.state.store is None:
            app.state.store = build_store()

    # Every error body is {"message": ...}
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)

    # Only an unparsable JSON body can fail validation, path ids are plain strings
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"message": "The request body could not be parsed"})

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info({"msg": "request_start", "method": request.method, "path": request.url.path})
        response = await call_next(request)
        logger.info({"msg": "request_end", "status": response.status_code})
        return response

    @app.get("/")
    async def root():
        return {"message": "Post Service Running"}

    return app


app = create_app()
