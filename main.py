from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from admin import AdminMutator, ValidationFailed
from database import ConfigStore, CredentialStore, ProductStore, StorageError
from observability import build_logger, configure_logging
from schemas import AuthRequest, ConfigRequest, PasswordRequest, ProductsRequest
from settings import Settings, load_settings

logger = build_logger(__name__)


# Dependencies

def get_products_store(request: Request) -> ProductStore:
    return request.app.state.products


def get_config_store(request: Request) -> ConfigStore:
    return request.app.state.config


def get_credential(request: Request) -> CredentialStore:
    return request.app.state.credential


def get_admin(request: Request) -> AdminMutator:
    return request.app.state.admin


def require_admin(
    x_admin_pass: Optional[str] = Header(None),
    credential: CredentialStore = Depends(get_credential),
) -> None:
    if not credential.matches(x_admin_pass):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def create_app(settings: Settings) -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title=settings.app_name)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    products = ProductStore(settings.products_path)
    config = ConfigStore(settings.config_path)
    credential = CredentialStore(settings.admin_pass, settings.env_file_path)
    app.state.products = products
    app.state.config = config
    app.state.credential = credential
    app.state.admin = AdminMutator(products, config, credential)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Malformed body for {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Invalid payload"})

    @app.get("/")
    def read_root():
        return {"message": "Vending kiosk API ready"}

    @app.get("/api/health")
    def health():
        return {
            "backend": "running",
            "products_file": "present" if settings.products_path.exists() else "missing",
            "config_file": "present" if settings.config_path.exists() else "missing",
        }

    # Storefront endpoints
    @app.get("/api/products")
    def list_products(store: ProductStore = Depends(get_products_store)):
        try:
            return store.load()
        except StorageError as e:
            logger.error(f"Unable to read products.json: {e}")
            raise HTTPException(status_code=500, detail="Failed to read products file")

    @app.get("/api/config")
    def read_config(store: ConfigStore = Depends(get_config_store)):
        try:
            return store.load()
        except StorageError as e:
            logger.error(f"Unable to read config: {e}")
            raise HTTPException(status_code=500, detail="Failed to read config")

    # Auth endpoints
    @app.post("/api/auth")
    def check_pin(payload: Optional[AuthRequest] = None, credential: CredentialStore = Depends(get_credential)):
        if payload is None or not credential.matches(payload.pin):
            logger.warning("Rejected admin PIN attempt")
            raise HTTPException(status_code=401, detail="Invalid PIN")
        return {"success": True}

    # Admin endpoints
    @app.post("/api/products", dependencies=[Depends(require_admin)])
    def save_products(payload: Optional[ProductsRequest] = None, admin: AdminMutator = Depends(get_admin)):
        try:
            admin.save_products(payload.products if payload else None)
        except ValidationFailed as e:
            raise HTTPException(status_code=400, detail=str(e))
        except StorageError as e:
            logger.error(f"Failed to save products: {e}")
            raise HTTPException(status_code=500, detail="Failed to save products")
        return {"success": True}

    @app.post("/api/config", dependencies=[Depends(require_admin)])
    def save_config(payload: Optional[ConfigRequest] = None, admin: AdminMutator = Depends(get_admin)):
        payload = payload or ConfigRequest()
        try:
            next_config = admin.save_config(payload.status, payload.categories, payload.theme)
        except ValidationFailed as e:
            raise HTTPException(status_code=400, detail=str(e))
        except StorageError as e:
            logger.error(f"Failed to save config: {e}")
            raise HTTPException(status_code=500, detail="Failed to save config")
        return {"success": True, "config": next_config}

    @app.post("/api/password", dependencies=[Depends(require_admin)])
    def update_password(payload: Optional[PasswordRequest] = None, admin: AdminMutator = Depends(get_admin)):
        try:
            admin.update_pin(payload.newPass if payload else None)
        except ValidationFailed as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"success": True}

    return app


def dev():
    import uvicorn

    settings = load_settings()
    logger.info(f"Vending kiosk server running on http://localhost:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


# Instantiate global app for ASGI
app = create_app(load_settings())


if __name__ == "__main__":
    dev()
