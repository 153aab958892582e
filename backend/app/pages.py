"""Server-rendered HTML pages."""
from __future__ import annotations

from pathlib import Path
from string import Template

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse, RedirectResponse

from . import seo
from .auth.sessions import AdminSession
from .dependencies import get_session

WEBAPP_DIR = Path(__file__).resolve().parents[2] / "webapp"
LAYOUT_PATH = WEBAPP_DIR / "layout.html"
ASSETS_DIR = WEBAPP_DIR / "assets"

router = APIRouter(tags=["pages"])


def render_page(name: str, meta: seo.PageMeta) -> HTMLResponse:
    fragment_path = WEBAPP_DIR / "pages" / f"{name}.html"
    if not LAYOUT_PATH.exists() or not fragment_path.exists():
        raise HTTPException(status_code=404, detail="Page not found")
    layout = Template(LAYOUT_PATH.read_text(encoding="utf-8"))
    html = layout.safe_substitute(
        head=seo.render_head(meta),
        page=name,
        content=fragment_path.read_text(encoding="utf-8").rstrip("\n"),
    )
    return HTMLResponse(content=html)


@router.get("/", response_class=HTMLResponse)
def home() -> HTMLResponse:
    return render_page("home", seo.HOME)


@router.get("/impressum", response_class=HTMLResponse)
def impressum() -> HTMLResponse:
    return render_page("impressum", seo.IMPRESSUM)


@router.get("/datenschutz", response_class=HTMLResponse)
def datenschutz() -> HTMLResponse:
    return render_page("datenschutz", seo.DATENSCHUTZ)


@router.get("/login", response_class=HTMLResponse)
def login_page() -> HTMLResponse:
    return render_page("login", seo.LOGIN)


@router.get("/admin", response_class=HTMLResponse)
def admin_page(session: AdminSession = Depends(get_session)):
    if not session.is_admin:
        return RedirectResponse("/login", status_code=302)
    return render_page("admin", seo.ADMIN)


@router.get("/{path:path}", include_in_schema=False)
def fallback(path: str):
    if path.startswith("api/"):
        raise HTTPException(status_code=404, detail="Not found")
    return RedirectResponse("/", status_code=302)
