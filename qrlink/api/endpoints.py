"""
FastAPI Endpoints for the QR Link Service

This module defines the HTTP surface with minimal logic.
Endpoints only handle:
- Request parsing (Pydantic models)
- Mapping service exceptions to HTTP responses
- Choosing HTML pages vs redirects
- Delegating to the service layer

Routes:
- POST   /api/create   create a link (or echo text)
- GET    /api/manage   list active links
- DELETE /api/manage   deactivate a link
- GET    /api/qr/{code} QR image for a live link
- GET    /{path}       resolve a public link (registered last, catch-all)
"""

import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response, status
from fastapi.responses import RedirectResponse

from qrlink.api.pages import interstitial_page, not_found_page, text_page
from qrlink.api.schemas import (
    CreateRequest,
    CreateResponse,
    DeleteRequest,
    LinkOut,
    QRResponse,
    SuccessResponse,
)
from qrlink.core.exceptions import (
    AllocationExhaustedError,
    DatabaseError,
    InvalidSubmissionError,
    QRLinkError,
    ShortCodeNotFoundError,
)
from qrlink.core.validators import sanitize_short_code
from qrlink.db.interface import LinkStore
from qrlink.db.session import get_link_store, link_store_scope
from qrlink.services.creation import CreationService
from qrlink.services.detection import context_from_request
from qrlink.services.qr import generate_qr_base64
from qrlink.services.registry import CodeRegistry
from qrlink.services.resolution import ResolutionKind, ResolutionService
from qrlink.services.routes import build_public_url, path_segment_for
from qrlink.services.scan_recorder import ScanRecorder

logger = logging.getLogger(__name__)

router = APIRouter()

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
}


def get_registry(store: LinkStore = Depends(get_link_store)) -> CodeRegistry:
    """Registry bound to the request's store."""
    return CodeRegistry(store)


def get_scan_recorder() -> ScanRecorder:
    """Recorder that opens its own store, since it runs after the request ends."""
    return ScanRecorder(link_store_scope)


def preflight(methods: str) -> Response:
    return Response(
        status_code=status.HTTP_200_OK,
        headers={**PREFLIGHT_HEADERS, "Access-Control-Allow-Methods": methods},
    )


def method_not_allowed() -> None:
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed"
    )


@router.post(
    "/api/create",
    response_model=CreateResponse,
    summary="Create a short link",
    description="Shortens a URL into an expiring public link, or echoes plain text back"
)
async def create_link(
    request: Request,
    body: CreateRequest,
    registry: CodeRegistry = Depends(get_registry),
) -> CreateResponse:
    """
    Create a new short link.

    Raises:
        HTTPException 400: Missing content or expiry, invalid expiry
        HTTPException 500: Code allocation or storage failure
    """
    context = context_from_request(request, body.restrictive_context_flag)
    service = CreationService(registry)

    try:
        result = await service.create(
            content=body.content,
            expires_in_minutes=body.expires_in_minutes,
            route_hint=body.route_hint,
            context=context,
        )
    except InvalidSubmissionError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except AllocationExhaustedError as e:
        logger.error(str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to generate unique short code"
        )
    except DatabaseError as e:
        logger.error(f"Failed to create link: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database error"
        )

    return CreateResponse.from_result(result)


@router.options("/api/create", include_in_schema=False)
async def create_link_preflight() -> Response:
    return preflight("POST, OPTIONS")


@router.api_route("/api/create", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def create_link_wrong_method() -> None:
    method_not_allowed()


@router.get(
    "/api/manage",
    response_model=List[LinkOut],
    summary="List active links",
    description="Deactivates expired links, then returns the active ones, newest first"
)
async def list_links(registry: CodeRegistry = Depends(get_registry)) -> List[LinkOut]:
    try:
        await registry.sweep_expired()
        links = await registry.list_active()
    except DatabaseError as e:
        logger.error(f"Failed to list links: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database error"
        )
    return [LinkOut.model_validate(link) for link in links]


@router.delete(
    "/api/manage",
    response_model=SuccessResponse,
    summary="Deactivate a link",
    description="Marks a link inactive; it resolves as not found from then on"
)
async def delete_link(
    body: DeleteRequest,
    registry: CodeRegistry = Depends(get_registry),
) -> SuccessResponse:
    if not body.code or not body.code.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing shortCode"
        )

    code = body.code.strip()
    try:
        await registry.sweep_expired()
        matched = await registry.deactivate(code)
    except DatabaseError as e:
        logger.error(f"Failed to deactivate {code}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database error"
        )

    if matched:
        logger.info(f"Deactivated short code {code}")
    else:
        logger.info(f"Deactivate requested for unknown short code {code}")
    return SuccessResponse(success=True)


@router.options("/api/manage", include_in_schema=False)
async def manage_preflight() -> Response:
    return preflight("GET, DELETE, OPTIONS")


@router.api_route("/api/manage", methods=["POST", "PUT", "PATCH"], include_in_schema=False)
async def manage_wrong_method() -> None:
    method_not_allowed()


@router.get(
    "/api/qr/{short_code}",
    response_model=QRResponse,
    summary="QR image for a link",
    description="Base64 PNG of the public link for a live short code"
)
async def qr_image(
    short_code: str,
    request: Request,
    registry: CodeRegistry = Depends(get_registry),
) -> QRResponse:
    code = sanitize_short_code(short_code)
    try:
        if code is None:
            raise ShortCodeNotFoundError(short_code)
        link = await registry.get_live(code)
    except ShortCodeNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

    context = context_from_request(request)
    public_url = build_public_url(
        context.base_url,
        path_segment_for(link.route_hint, link.compact_mode),
        link.code,
    )
    return QRResponse(code=link.code, qr_base64=generate_qr_base64(public_url))


@router.get("/{path:path}", include_in_schema=False)
async def resolve_link(
    path: str,
    request: Request,
    background_tasks: BackgroundTasks,
    registry: CodeRegistry = Depends(get_registry),
    recorder: ScanRecorder = Depends(get_scan_recorder),
):
    """
    Resolve a public link.

    Returns:
        302 redirect, 200 interstitial or text page, or the 404 page
    """
    def dispatch_scan(link_id, event):
        # Runs after the response has been sent
        background_tasks.add_task(recorder.record, link_id, event)

    service = ResolutionService(registry, dispatch_scan)
    context = context_from_request(request)

    try:
        resolution = await service.resolve(request.url.path, context)
    except QRLinkError as e:
        logger.error(f"Failed to resolve {request.url.path}: {str(e)}", exc_info=True)
        return not_found_page(request)

    if resolution.kind is ResolutionKind.NOT_FOUND:
        return not_found_page(request)
    if resolution.kind is ResolutionKind.TEXT:
        return text_page(request, resolution)
    if resolution.kind is ResolutionKind.INTERSTITIAL:
        return interstitial_page(request, resolution)

    return RedirectResponse(
        url=resolution.payload,
        status_code=status.HTTP_302_FOUND
    )
