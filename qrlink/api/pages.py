"""HTML pages served by the resolution endpoint."""

from pathlib import Path

from fastapi import Request, status
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from qrlink.services.resolution import Resolution

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATE_DIR))

HTML_HEADERS = {
    "X-Frame-Options": "SAMEORIGIN",
    "X-Content-Type-Options": "nosniff",
}


def not_found_page(request: Request) -> HTMLResponse:
    """Same page for unknown, expired and deactivated codes."""
    return templates.TemplateResponse(
        request=request,
        name="not_found.html",
        context={},
        status_code=status.HTTP_404_NOT_FOUND,
        headers=HTML_HEADERS,
    )


def interstitial_page(request: Request, resolution: Resolution) -> HTMLResponse:
    return templates.TemplateResponse(
        request=request,
        name="interstitial.html",
        context={"payload": resolution.payload, "display_name": resolution.display_name},
        status_code=status.HTTP_200_OK,
        headers=HTML_HEADERS,
    )


def text_page(request: Request, resolution: Resolution) -> HTMLResponse:
    return templates.TemplateResponse(
        request=request,
        name="text.html",
        context={"payload": resolution.payload, "display_name": resolution.display_name},
        status_code=status.HTTP_200_OK,
        headers=HTML_HEADERS,
    )
