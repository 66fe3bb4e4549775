"""
ScriptSentries Scripts API
==========================
Zero-retention script scan, findings review, versioning and export.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status
from fastapi.responses import Response

from api.deps import CurrentUser, Lifecycle, Pipeline, Store
from core.errors import PipelineFailed, ScriptSentriesError
from core.exporter import export_filename, generate_report
from core.models import Document, RiskFinding
from schemas import (
    AssignVersionRequest,
    DeleteResponse,
    DocumentResponse,
    ErrorResponse,
    RenameVersionRequest,
    RiskFindingSchema,
    RiskUpdateRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Scripts"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def to_document_response(
    document: Document,
    findings: list[RiskFinding] | None = None,
    **extra
) -> DocumentResponse:
    risks = None if findings is None else [RiskFindingSchema(**f.to_dict()) for f in findings]
    return DocumentResponse(**document.to_dict(), risks=risks, **extra)


def validate_file(file: UploadFile) -> None:
    """
    Validate an uploaded script.

    Raises:
        HTTPException: If the file is not a PDF
    """
    if file.content_type != "application/pdf":
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail={
                "error": "UnsupportedMediaType",
                "message": "Only PDF files are accepted.",
                "details": {
                    "received_type": file.content_type,
                    "accepted_types": ["application/pdf"]
                }
            }
        )


@router.post(
    "/scripts/scan",
    response_model=DocumentResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Not permitted to upload"},
        404: {"model": ErrorResponse, "description": "Project not found"},
        415: {"model": ErrorResponse, "description": "Unsupported file type"},
        422: {"model": ErrorResponse, "description": "Empty or oversized file"},
        500: {"model": ErrorResponse, "description": "Analysis failed"}
    },
    summary="Scan a script",
    description="""
    Upload a PDF script under a project and analyze it page by page.

    The uploaded bytes are held in a transient scratch file for the duration
    of the call only and are erased before the response is sent.
    """
)
async def scan_script(
    file: Annotated[UploadFile, File(description="PDF script")],
    project_id: Annotated[str, Form()],
    user_id: CurrentUser,
    pipeline: Pipeline,
    version_name: Annotated[str | None, Form()] = None
) -> DocumentResponse:
    validate_file(file)
    filename = file.filename or "script.pdf"
    raw_bytes = await file.read()

    try:
        result = await pipeline.analyze(raw_bytes, filename, project_id, user_id, version_name)
    except ScriptSentriesError:
        raise
    except Exception as e:
        logger.error(f"Scan failed for '{filename}': {e}")
        raise PipelineFailed(filename, str(e)) from e

    return to_document_response(
        result.document,
        result.findings,
        failed_pages=result.failed_pages,
        all_pages_failed=result.all_pages_failed
    )


@router.get("/scripts", response_model=list[DocumentResponse], summary="Recent activity")
async def list_scripts(user_id: CurrentUser, store: Store) -> list[DocumentResponse]:
    """Active scripts across the caller's active projects, newest first."""
    project_ids = {p.id for p in store.active_projects_for_user(user_id)}
    return [
        to_document_response(d)
        for d in store.active_documents()
        if d.project_id in project_ids
    ]


@router.get(
    "/scripts/{document_id}",
    response_model=DocumentResponse,
    responses={404: {"model": ErrorResponse, "description": "Script not found"}}
)
async def get_script(document_id: str, user_id: CurrentUser, lifecycle: Lifecycle) -> DocumentResponse:
    document = lifecycle.get_document(document_id, user_id)
    return to_document_response(document, lifecycle.document_findings(document_id, user_id))


@router.delete("/scripts/{document_id}", response_model=DeleteResponse, summary="Soft-delete a script")
async def delete_script(document_id: str, user_id: CurrentUser, lifecycle: Lifecycle) -> DeleteResponse:
    lifecycle.delete_document(document_id, user_id)
    return DeleteResponse(message="Script deleted successfully", id=document_id)


@router.patch("/scripts/{document_id}/rename", response_model=DocumentResponse)
async def rename_script(
    document_id: str,
    request: RenameVersionRequest,
    user_id: CurrentUser,
    lifecycle: Lifecycle
) -> DocumentResponse:
    return to_document_response(lifecycle.rename_version(document_id, request.version_name, user_id))


@router.post("/scripts/{document_id}/assign", response_model=DocumentResponse)
async def assign_script(
    document_id: str,
    request: AssignVersionRequest,
    user_id: CurrentUser,
    lifecycle: Lifecycle
) -> DocumentResponse:
    document = lifecycle.assign_version(document_id, request.project_id, request.version_name, user_id)
    return to_document_response(document)


@router.get(
    "/scripts/{document_id}/export",
    responses={200: {"content": {XLSX_MEDIA_TYPE: {}}}},
    summary="Export clearance report",
    description="Spreadsheet export; redacted findings hide entity, snippet, comments and restrictions."
)
async def export_script(document_id: str, user_id: CurrentUser, lifecycle: Lifecycle) -> Response:
    document = lifecycle.get_document(document_id, user_id)
    findings = lifecycle.document_findings(document_id, user_id)
    content = generate_report(document, findings)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{export_filename(document)}"'}
    )


@router.patch("/risks/{finding_id}", response_model=RiskFindingSchema, summary="Review a finding")
async def update_risk(
    finding_id: str,
    request: RiskUpdateRequest,
    user_id: CurrentUser,
    lifecycle: Lifecycle
) -> RiskFindingSchema:
    finding = lifecycle.update_finding(
        finding_id,
        user_id,
        status=request.status,
        comments=request.comments,
        restrictions=request.restrictions,
        is_redacted=request.is_redacted
    )
    return RiskFindingSchema(**finding.to_dict())
