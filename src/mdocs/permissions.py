# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request

from mdocs.auth.session import ANONYMOUS, SessionData
from mdocs.auth.users import CredentialStore, Role
from mdocs.core.errors import Unauthorized
from mdocs.infra.document_repo import DocumentRepository

ROLE_ORDER = {Role.REGULAR: 1, Role.ADMIN: 2}


@dataclass(frozen=True)
class CurrentUser:
    username: str
    role: Role


def is_logged_in(user: Optional[CurrentUser]) -> bool:
    return user is not None and bool(user.username)


def is_admin(user: Optional[CurrentUser]) -> bool:
    return is_logged_in(user) and user.role is Role.ADMIN


def _rank(user: Optional[CurrentUser]) -> int:
    if not is_logged_in(user):
        return 0
    return ROLE_ORDER.get(user.role, 0)


def require_role(user: Optional[CurrentUser], role: Role) -> CurrentUser:
    """Return the user if it holds at least ``role``, else raise Unauthorized."""
    if _rank(user) < ROLE_ORDER[Role(role)]:
        raise Unauthorized()
    return user


@dataclass(frozen=True)
class RequestContext:
    """Everything a handler needs for one request."""

    session: SessionData
    user: Optional[CurrentUser]
    store: CredentialStore
    documents: DocumentRepository

    @property
    def is_logged_in(self) -> bool:
        return is_logged_in(self.user)

    @property
    def is_admin(self) -> bool:
        return is_admin(self.user)


def load_user(session: SessionData, store: CredentialStore) -> Optional[CurrentUser]:
    """Resolve the session username against the store.

    A session naming a user that no longer exists is anonymous.
    """
    if not session.username:
        return None
    u = store.get(session.username)
    if u is None:
        return None
    return CurrentUser(username=u.username, role=u.role)


def request_context(request: Request) -> RequestContext:
    ctx = getattr(request.state, "ctx", None)
    if ctx is not None:
        return ctx
    session = getattr(request.state, "session", ANONYMOUS)
    store = request.app.state.store
    ctx = RequestContext(
        session=session,
        user=load_user(session, store),
        store=store,
        documents=request.app.state.documents,
    )
    request.state.ctx = ctx
    return ctx


def require_user(ctx: RequestContext = Depends(request_context)) -> RequestContext:
    require_role(ctx.user, Role.REGULAR)
    return ctx


def require_admin(ctx: RequestContext = Depends(request_context)) -> RequestContext:
    require_role(ctx.user, Role.ADMIN)
    return ctx
