# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from mdocs.auth.session import ANONYMOUS, SessionData, SessionSigner
from mdocs.auth.users import AddUser, CredentialStore, DeleteUser, EditUser, Role
from mdocs.config import Settings
from mdocs.core.errors import (
    DocumentNotFound,
    InvalidCredentialInput,
    NotFound,
    StoreCorrupt,
    Unauthorized,
    UserNotFound,
    ValidationError,
)
from mdocs.infra.document_repo import DocumentRepository
from mdocs.permissions import RequestContext, request_context, require_admin, require_user
from mdocs.services.render_service import render_document

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

router = APIRouter()

WRONG_CREDENTIALS = "Wrong username or password."


# ------------------ Session / rendering helpers ------------------


def _session(request: Request) -> SessionData:
    return getattr(request.state, "session", ANONYMOUS)


def _save_session(request: Request, response, data: SessionData) -> None:
    settings: Settings = request.app.state.settings
    if data.is_empty:
        response.delete_cookie(settings.cookie_name)
        return
    signer: SessionSigner = request.app.state.signer
    response.set_cookie(
        settings.cookie_name,
        signer.sign(data),
        max_age=settings.session_max_age,
        **settings.cookie_settings(),
    )


def _render(request: Request, template_name: str, ctx: Optional[dict] = None, *, status_code: int = 200):
    """TemplateResponse wrapper injecting the user and the pending flash message.

    Rendering a page consumes the flash message.
    """
    session = _session(request)
    rctx: Optional[RequestContext] = getattr(request.state, "ctx", None)
    base_ctx = {
        "current_user": rctx.user if rctx else None,
        "is_admin": rctx.is_admin if rctx else False,
        "message": session.message,
    }
    merged = {**base_ctx, **(ctx or {})}
    resp = templates.TemplateResponse(request, template_name, merged, status_code=status_code)
    if session.message:
        _save_session(request, resp, session.without_message())
    return resp


def _redirect(
    request: Request,
    url: str = "/",
    *,
    message: Optional[str] = None,
    session: Optional[SessionData] = None,
) -> RedirectResponse:
    """303 redirect, optionally replacing the session and setting a flash message."""
    resp = RedirectResponse(url=url, status_code=303)
    data = session if session is not None else _session(request)
    if message:
        data = data.with_message(message)
    _save_session(request, resp, data)
    return resp


def _parse_role(role: str) -> Role:
    try:
        return Role((role or Role.REGULAR.value).strip().lower())
    except ValueError:
        raise InvalidCredentialInput(f"Unknown role: {role}") from None


# ------------------ Routes: documents ------------------


@router.get("/", response_class=HTMLResponse)
def index(request: Request, ctx: RequestContext = Depends(request_context)):
    return _render(request, "index.html", {"filenames": ctx.documents.list_documents()})


@router.get("/edit/{filename}", response_class=HTMLResponse)
def edit_document_get(request: Request, filename: str, ctx: RequestContext = Depends(require_user)):
    content = ctx.documents.read(filename).decode("utf-8", errors="replace")
    return _render(request, "edit.html", {"filename": filename, "content": content})


@router.post("/edit/{filename}")
def edit_document_post(
    request: Request,
    filename: str,
    content: str = Form(""),
    ctx: RequestContext = Depends(require_user),
):
    if not ctx.documents.exists(filename):
        raise DocumentNotFound(filename)
    ctx.documents.write(filename, content.encode("utf-8"))
    return _redirect(request, "/", message=f"{filename} has been updated.")


@router.get("/create/new-document", response_class=HTMLResponse)
def create_document_get(request: Request, ctx: RequestContext = Depends(require_user)):
    return _render(request, "create.html", {"filename": "", "error": ""})


@router.post("/create/new-document")
def create_document_post(
    request: Request,
    filename: str = Form(""),
    ctx: RequestContext = Depends(require_user),
):
    try:
        name = ctx.documents.create(filename)
    except ValidationError as e:
        return _render(request, "create.html", {"filename": filename, "error": e.message}, status_code=422)
    return _redirect(request, "/", message=f"{name} was created.")


@router.post("/delete/{filename}")
def delete_document(request: Request, filename: str, ctx: RequestContext = Depends(require_user)):
    ctx.documents.delete(filename)
    return _redirect(request, "/", message=f"{filename} was deleted.")


# ------------------ Routes: sign in / out ------------------


@router.get("/user/login", response_class=HTMLResponse)
def login_get(request: Request, ctx: RequestContext = Depends(request_context)):
    if ctx.is_logged_in:
        return _redirect(request, "/")
    return _render(request, "login.html", {"username": "", "error": ""})


@router.post("/user/login")
def login_post(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    ctx: RequestContext = Depends(request_context),
):
    u = ctx.store.authenticate(username=username, password=password)
    if not u:
        logger.info("Failed sign-in for %r", username)
        return _render(request, "login.html", {"username": username, "error": WRONG_CREDENTIALS}, status_code=422)
    logger.info("User %r signed in", u.username)
    return _redirect(request, "/", message=f"Welcome back, {u.username}.", session=SessionData(username=u.username))


@router.post("/user/logout")
def logout_post(request: Request):
    return _redirect(request, "/", message="You have been signed out.", session=ANONYMOUS)


# ------------------ Routes: user administration ------------------


@router.get("/users/view", response_class=HTMLResponse)
def users_view(request: Request, ctx: RequestContext = Depends(require_admin)):
    return _render(request, "users.html", {"users": ctx.store.load_all()})


@router.get("/users/add", response_class=HTMLResponse)
def users_add_get(request: Request, ctx: RequestContext = Depends(require_admin)):
    return _render(
        request,
        "user_form.html",
        {"mode": "add", "username": "", "role": Role.REGULAR.value, "roles": list(Role), "error": ""},
    )


@router.post("/users/add")
def users_add_post(
    request: Request,
    new_username: str = Form(""),
    new_password: str = Form(""),
    role: str = Form(Role.REGULAR.value),
    ctx: RequestContext = Depends(require_admin),
):
    try:
        op = AddUser(new_username=new_username, new_password=new_password, role=_parse_role(role))
        ctx.store.mutate(op)
    except ValidationError as e:
        return _render(
            request,
            "user_form.html",
            {"mode": "add", "username": new_username, "role": role, "roles": list(Role), "error": e.message},
            status_code=422,
        )
    return _redirect(request, "/users/view", message=f"User {op.new_username.strip()} was added.")


@router.get("/users/edit/{username}", response_class=HTMLResponse)
def users_edit_get(request: Request, username: str, ctx: RequestContext = Depends(require_admin)):
    u = ctx.store.get(username)
    if u is None:
        raise UserNotFound(username)
    return _render(
        request,
        "user_form.html",
        {"mode": "edit", "original_username": u.username, "username": u.username, "role": u.role.value,
         "roles": list(Role), "error": ""},
    )


@router.post("/users/edit/{username}")
def users_edit_post(
    request: Request,
    username: str,
    new_username: str = Form(""),
    new_password: str = Form(""),
    role: str = Form(""),
    ctx: RequestContext = Depends(require_admin),
):
    try:
        op = EditUser(
            original_username=username,
            new_username=new_username,
            new_password=new_password,
            role=_parse_role(role) if role else None,
        )
        ctx.store.mutate(op)
    except ValidationError as e:
        return _render(
            request,
            "user_form.html",
            {"mode": "edit", "original_username": username, "username": new_username or username,
             "role": role, "roles": list(Role), "error": e.message},
            status_code=422,
        )

    final_name = new_username.strip() or username
    if ctx.user and ctx.user.username == username:
        # Editing yourself: keep the session pointed at the (possibly renamed) account.
        still_admin = ctx.store.get(final_name)
        url = "/users/view" if still_admin and still_admin.is_admin else "/"
        return _redirect(
            request, url, message=f"User {final_name} was updated.", session=SessionData(username=final_name)
        )
    return _redirect(request, "/users/view", message=f"User {final_name} was updated.")


@router.post("/users/delete/{username}")
def users_delete(request: Request, username: str, ctx: RequestContext = Depends(require_admin)):
    if ctx.user and ctx.user.username == username:
        return _redirect(request, "/users/view", message="You cannot delete your own account.")
    try:
        removed = ctx.store.mutate(DeleteUser(username=username))
    except ValidationError as e:
        return _redirect(request, "/users/view", message=e.message)
    if not removed:
        return _redirect(request, "/users/view", message=UserNotFound(username).message)
    return _redirect(request, "/users/view", message=f"User {username} was deleted.")


# ------------------ Routes: documents (catch-all, keep last) ------------------


@router.get("/{filename}")
def view_document(request: Request, filename: str, ctx: RequestContext = Depends(request_context)):
    media_type, body = render_document(filename, ctx.documents.read(filename))
    if media_type == "text/html":
        return _render(request, "document.html", {"filename": filename, "body": body})
    return PlainTextResponse(body)


# ------------------ App factory ------------------


async def _unauthorized_handler(request: Request, exc: Unauthorized):
    return _redirect(request, "/", message=exc.message)


async def _not_found_handler(request: Request, exc: NotFound):
    return _redirect(request, "/", message=exc.message)


async def _store_corrupt_handler(request: Request, exc: StoreCorrupt):
    logger.error("Credential store is unreadable: %s", exc.reason, exc_info=exc)
    return PlainTextResponse("Credential store is unreadable.", status_code=500)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    app = FastAPI(title="mdocs")
    app.state.settings = settings
    app.state.signer = SessionSigner(settings.secret_key, max_age=settings.session_max_age)
    app.state.store = CredentialStore(settings.users_path)
    app.state.documents = DocumentRepository(settings.documents_dir)
    app.state.documents.ensure_root()

    @app.middleware("http")
    async def _session_middleware(request: Request, call_next):
        token = request.cookies.get(settings.cookie_name, "")
        request.state.session = app.state.signer.verify(token)
        return await call_next(request)

    app.add_exception_handler(Unauthorized, _unauthorized_handler)
    app.add_exception_handler(NotFound, _not_found_handler)
    app.add_exception_handler(StoreCorrupt, _store_corrupt_handler)

    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")
    app.include_router(router)
    return app
