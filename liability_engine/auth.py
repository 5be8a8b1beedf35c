# liability_engine/auth.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from fastapi import Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .errors import Forbidden
from .models import Organization, AppUser, OrgMembership


@dataclass(frozen=True)
class Principal:
    org_id: int
    org_slug: str
    user_id: int
    email: str
    role: str  # owner | operator | clerk | analyst | tenant
    display_name: str | None = None

    @property
    def is_operator(self) -> bool:
        return self.role in OPERATOR_ROLES

    @property
    def is_tenant(self) -> bool:
        return self.role == "tenant"


KNOWN_ROLES = frozenset({"owner", "operator", "clerk", "analyst", "tenant"})
# analyst is read-only staff; tenant is matched to a Tenant row by email
OPERATOR_ROLES = frozenset({"clerk", "operator", "owner"})


# -------------------------
# Org + membership helpers
# -------------------------
def _get_org(db: Session, org_slug: str) -> Organization | None:
    return db.scalar(select(Organization).where(Organization.slug == org_slug))


def _get_user_by_email(db: Session, email: str) -> AppUser | None:
    return db.scalar(select(AppUser).where(AppUser.email == email))


def _get_membership(db: Session, org_id: int, user_id: int) -> OrgMembership | None:
    return db.scalar(select(OrgMembership).where(OrgMembership.org_id == org_id, OrgMembership.user_id == user_id))


def _provision(db: Session, *, org_slug: str, email: str, role_hint: str) -> tuple[Organization, AppUser, OrgMembership]:
    org = _get_org(db, org_slug)
    if org is None:
        org = Organization(slug=org_slug, name=org_slug, created_at=datetime.utcnow())
        db.add(org)
        db.flush()

    user = _get_user_by_email(db, email)
    if user is None:
        user = AppUser(email=email, display_name=email.split("@")[0], created_at=datetime.utcnow())
        db.add(user)
        db.flush()

    mem = _get_membership(db, org_id=int(org.id), user_id=int(user.id))
    if mem is None:
        role = role_hint if role_hint in KNOWN_ROLES else "analyst"
        mem = OrgMembership(org_id=int(org.id), user_id=int(user.id), role=role, created_at=datetime.utcnow())
        db.add(mem)

    db.commit()
    return org, user, mem


# -------------------------
# get_principal
# -------------------------
def get_principal(request: Request, db: Session = Depends(get_db)) -> Principal:
    """
    Resolve the caller from identity headers.

    Authentication itself happens upstream; this only maps an already
    authenticated (org, email) pair onto a membership and its role.
      - auth_mode=dev: unknown org/user/membership rows are auto-provisioned,
        the role comes from the role header.
      - auth_mode=headers: rows must exist, the stored membership role wins.
    """
    org_slug = (request.headers.get(settings.header_org_slug) or "").strip()
    if not org_slug:
        raise HTTPException(status_code=401, detail=f"Missing {settings.header_org_slug} (active org context).")

    email = (request.headers.get(settings.header_user_email) or "").strip().lower()
    if not email:
        raise HTTPException(status_code=401, detail=f"Missing {settings.header_user_email}")

    mode = (settings.auth_mode or "").strip().lower()
    if mode == "dev" and settings.dev_auto_provision:
        role_hint = (request.headers.get(settings.header_user_role) or "operator").strip().lower()
        org, user, mem = _provision(db, org_slug=org_slug, email=email, role_hint=role_hint)
    elif mode in ("dev", "headers"):
        org = _get_org(db, org_slug)
        if org is None:
            raise HTTPException(status_code=401, detail="Unknown org")
        user = _get_user_by_email(db, email)
        if user is None:
            raise HTTPException(status_code=401, detail="Unknown user")
        mem = _get_membership(db, org_id=int(org.id), user_id=int(user.id))
        if mem is None:
            raise Forbidden("not a member of this org")
    else:
        raise HTTPException(status_code=401, detail=f"Unsupported auth_mode {settings.auth_mode!r}")

    return Principal(
        org_id=int(org.id),
        org_slug=str(org.slug),
        user_id=int(user.id),
        email=str(user.email),
        role=str(mem.role),
        display_name=user.display_name,
    )
