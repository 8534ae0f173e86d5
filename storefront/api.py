"""HTTP API for the storefront catalogue and its admin panel."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Literal, Optional, Sequence

from fastapi import Depends, FastAPI, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .admin import DEFAULT_MASTER_CODE, AdminService, ensure_master_code
from .errors import BadRequest, register_exception_handlers
from .models import AccessCode, Message, Product
from .security import ADMIN_TOKEN_HEADER, AdminAuth, build_admin_dependency, build_master_dependency
from .sessions import Session, SessionRegistry
from .storage import Storage

logger = logging.getLogger("storefront.api")

PRODUCT_NOT_FOUND = "المنتج غير موجود"
NOTHING_TO_UPDATE = "لا توجد بيانات للتحديث"

Category = Literal["men", "women", "kids", "sports"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginRequest(CamelModel):
    code: Optional[str] = None


class LoginResponse(CamelModel):
    success: bool = True
    token: str
    is_master: bool
    label: str


class SessionResponse(CamelModel):
    label: str
    is_master: bool


class AccessCodeCreateRequest(CamelModel):
    code: Optional[str] = None
    label: Optional[str] = None


class AccessCodeResponse(CamelModel):
    id: str
    code: str
    label: str
    is_master: bool
    created_at: datetime


class ProductCreateRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    category: Category
    price: int = Field(..., ge=0)
    rating: int = Field(default=5, ge=0, le=5)
    image: str = Field(..., min_length=1)
    images: Optional[List[str]] = None
    description: str = Field(..., min_length=1)
    is_new: bool = False
    in_stock: bool = True
    sizes: Optional[List[int]] = None


class ProductUpdateRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[Category] = None
    price: Optional[int] = Field(default=None, ge=0)
    rating: Optional[int] = Field(default=None, ge=0, le=5)
    image: Optional[str] = Field(default=None, min_length=1)
    images: Optional[List[str]] = None
    description: Optional[str] = Field(default=None, min_length=1)
    is_new: Optional[bool] = None
    in_stock: Optional[bool] = None
    sizes: Optional[List[int]] = None


class ProductResponse(CamelModel):
    id: str
    name: str
    category: str
    price: int
    rating: int
    image: str
    images: Optional[List[str]] = None
    description: str
    is_new: bool
    in_stock: bool
    sizes: Optional[List[int]] = None


class MessageCreateRequest(CamelModel):
    content: str = Field(..., min_length=1, max_length=5000)
    is_system: bool = False


class MessageResponse(CamelModel):
    id: str
    content: str
    is_system: bool


def _code_to_response(code: AccessCode) -> AccessCodeResponse:
    return AccessCodeResponse(
        id=code.id,
        code=code.code,
        label=code.label,
        is_master=code.is_master,
        created_at=code.created_at,
    )


def _product_to_response(product: Product) -> ProductResponse:
    return ProductResponse(
        id=product.id,
        name=product.name,
        category=product.category,
        price=product.price,
        rating=product.rating,
        image=product.image,
        images=product.images,
        description=product.description,
        is_new=product.is_new,
        in_stock=product.in_stock,
        sizes=product.sizes,
    )


def _message_to_response(message: Message) -> MessageResponse:
    return MessageResponse(id=message.id, content=message.content, is_system=message.is_system)


def _product_missing() -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"message": PRODUCT_NOT_FOUND})


def create_app(
    *,
    storage: Storage,
    sessions: Optional[SessionRegistry] = None,
    master_code: str = DEFAULT_MASTER_CODE,
    cors_origins: Sequence[str] = ("*",),
) -> FastAPI:
    """Build the API around ``storage`` and ensure a master access code exists."""

    registry = sessions if sessions is not None else SessionRegistry()
    ensure_master_code(storage, master_code)

    admin = AdminService(storage, registry)
    current_admin = build_admin_dependency(AdminAuth(storage, registry))
    master_admin = build_master_dependency(current_admin)

    app = FastAPI(
        title="Storefront API",
        version="0.1.0",
        description="Product catalogue, message log and admin panel for the shoe storefront.",
    )
    app.state.storage = storage
    app.state.sessions = registry
    app.state.admin = admin

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cors_origins),
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", ADMIN_TOKEN_HEADER],
    )
    register_exception_handlers(app)

    @app.get("/healthz")
    def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------
    @app.get("/api/products", response_model=List[ProductResponse])
    def list_products() -> List[ProductResponse]:
        return [_product_to_response(product) for product in storage.list_products()]

    @app.get("/api/products/{product_id}", response_model=ProductResponse)
    def get_product(product_id: str):
        product = storage.get_product(product_id)
        if product is None:
            return _product_missing()
        return _product_to_response(product)

    @app.post("/api/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
    def create_product(
        payload: ProductCreateRequest,
        session: Session = Depends(current_admin),
    ) -> ProductResponse:
        product = storage.create_product(**payload.model_dump())
        logger.info("Product %s (%s) created by %r", product.id, product.name, session.label)
        return _product_to_response(product)

    @app.put("/api/products/{product_id}", response_model=ProductResponse)
    def update_product(
        product_id: str,
        payload: ProductUpdateRequest,
        session: Session = Depends(current_admin),
    ):
        if storage.get_product(product_id) is None:
            return _product_missing()
        fields = payload.model_dump(exclude_unset=True)
        if not fields:
            raise BadRequest(NOTHING_TO_UPDATE)
        product = storage.update_product(product_id, **fields)
        if product is None:
            return _product_missing()
        logger.info("Product %s updated by %r", product.id, session.label)
        return _product_to_response(product)

    @app.delete("/api/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_product(product_id: str, session: Session = Depends(current_admin)):
        if not storage.delete_product(product_id):
            return _product_missing()
        logger.info("Product %s deleted by %r", product_id, session.label)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------
    @app.get("/api/messages", response_model=List[MessageResponse])
    def list_messages() -> List[MessageResponse]:
        return [_message_to_response(message) for message in storage.list_messages()]

    @app.post("/api/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
    def create_message(payload: MessageCreateRequest) -> MessageResponse:
        message = storage.create_message(payload.content, is_system=payload.is_system)
        return _message_to_response(message)

    # ------------------------------------------------------------------
    # Admin authentication
    # ------------------------------------------------------------------
    @app.post("/api/admin/login", response_model=LoginResponse)
    def login(payload: Optional[LoginRequest] = None) -> LoginResponse:
        result = admin.login(payload.code if payload is not None else None)
        return LoginResponse(token=result.token, is_master=result.is_master, label=result.label)

    @app.get("/api/admin/session", response_model=SessionResponse)
    def current_session(session: Session = Depends(current_admin)) -> SessionResponse:
        return SessionResponse(label=session.label, is_master=session.is_master)

    @app.post("/api/admin/logout", status_code=status.HTTP_204_NO_CONTENT)
    def logout(session: Session = Depends(current_admin)):
        admin.logout(session.token)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    # ------------------------------------------------------------------
    # Access codes (master only)
    # ------------------------------------------------------------------
    @app.get("/api/admin/codes", response_model=List[AccessCodeResponse])
    def list_codes(_: Session = Depends(master_admin)) -> List[AccessCodeResponse]:
        return [_code_to_response(code) for code in admin.list_codes()]

    @app.post("/api/admin/codes", response_model=AccessCodeResponse, status_code=status.HTTP_201_CREATED)
    def create_code(
        payload: AccessCodeCreateRequest,
        _: Session = Depends(master_admin),
    ) -> AccessCodeResponse:
        return _code_to_response(admin.create_code(payload.code, payload.label))

    @app.delete("/api/admin/codes/{code_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_code(code_id: str, _: Session = Depends(master_admin)):
        admin.delete_code(code_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return app


__all__ = ["create_app"]
