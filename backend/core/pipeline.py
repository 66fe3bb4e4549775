"""
ScriptSentries Analysis Pipeline
================================
Orchestrates the full script analysis:

1. Upload check and Document creation (PROCESSING)
2. Transient scratch copy of the upload
3. Page extraction
4. Concurrent per-page classification
5. Aggregation, persistence and final status

Zero retention: the scratch copy is erased in a `finally` block on every
exit path. Failure to erase it is reported as a critical event and through
the optional `retention_alert` hook, never raised.
"""

import asyncio
import os
import tempfile
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import aiofiles
import structlog

from core.authorization import authorize
from core.classifier import RiskClassifier
from core.config import Settings, get_settings
from core.errors import RetentionCleanupFailed, ValidationFailed
from core.extractor import PageExtractor
from core.lifecycle import resolve_version_label
from core.models import Action, Document, DocumentStatus, RiskFinding, sort_findings
from core.store import WorkspaceStore

logger = structlog.get_logger(__name__)

SCRATCH_PREFIX = "ss_"
SCRATCH_SUFFIX = ".pdf"


def sweep_stale_scratch(directory: Path | None = None, max_age_seconds: float = 3600) -> int:
    """
    Erase scratch copies left behind by a process that died mid-analysis.

    Only files named like the pipeline's own scratch files and last modified
    more than `max_age_seconds` ago are touched, so in-flight analyses of
    other workers sharing the directory are left alone.
    Returns the number of files removed.
    """
    root = Path(directory or tempfile.gettempdir())
    cutoff = time.time() - max_age_seconds
    removed = 0
    for path in root.glob(f"{SCRATCH_PREFIX}*{SCRATCH_SUFFIX}"):
        try:
            if path.stat().st_mtime > cutoff:
                continue
            path.unlink()
            removed += 1
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.critical(
                "ZERO-RETENTION VIOLATION: stale scratch copy could not be erased",
                alert="zero_retention_violation",
                path=str(path),
                reason=str(e)
            )
    if removed:
        logger.warning("Erased stale scratch copies", count=removed, directory=str(root))
    return removed


@dataclass
class DocumentResult:
    """Outcome of one `analyze` call."""
    document: Document
    findings: list[RiskFinding]
    failed_pages: list[int] = field(default_factory=list)
    blank_pages: int = 0

    @property
    def all_pages_failed(self) -> bool:
        """True when there was text to classify and every such page failed."""
        classified = self.document.total_pages - self.blank_pages
        return classified > 0 and len(self.failed_pages) == classified

    def to_dict(self) -> dict[str, Any]:
        data = self.document.to_dict()
        data.update({
            "risks": [f.to_dict() for f in self.findings],
            "failed_pages": self.failed_pages,
            "all_pages_failed": self.all_pages_failed,
        })
        return data


class AnalysisPipeline:
    """Runs extraction and classification for one uploaded script at a time."""

    def __init__(
        self,
        store: WorkspaceStore,
        classifier: RiskClassifier | None = None,
        extractor: PageExtractor | None = None,
        settings: Settings | None = None,
        retention_alert: Callable[[RetentionCleanupFailed], None] | None = None
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.classifier = classifier or RiskClassifier(settings=self.settings)
        self.extractor = extractor or PageExtractor()
        self.retention_alert = retention_alert

    async def analyze(
        self,
        raw_bytes: bytes,
        filename: str,
        project_id: str,
        uploader_id: str,
        version_label: str | None = None
    ) -> DocumentResult:
        """
        Analyze an uploaded script under a project.

        Raises:
            NotFound / NotAMember / Forbidden: Before any record is created
            ValidationFailed: On empty or oversized uploads
            Exception: Any extraction or persistence error, after the
                document is marked FAILED and the scratch copy is erased
        """
        project = self.store.get_project(project_id)
        authorize(self.store, project, uploader_id, Action.UPLOAD)
        if not raw_bytes:
            raise ValidationFailed("file", "empty upload")
        if len(raw_bytes) > self.settings.max_file_size_bytes:
            raise ValidationFailed(
                "file", f"exceeds maximum size of {self.settings.max_file_size_mb}MB"
            )

        document = Document(
            filename=filename or "script.pdf",
            project_id=project.id,
            uploaded_by=uploader_id,
            version_name=resolve_version_label(self.store, project.id, version_label)
        )
        self.store.save_document(document)
        log = logger.bind(document_id=document.id, filename=document.filename)
        log.info("Received script for analysis", project=project.name)

        scratch_path: Path | None = None
        try:
            scratch_path = self._create_scratch_file()
            await self._write_scratch(scratch_path, raw_bytes)

            pages = await self.extractor.extract_pages(scratch_path)
            document.total_pages = len(pages)
            self.store.save_document(document)
            log.info("Extracted pages", pages=len(pages))

            findings, failed_pages = await self._classify_pages(document, pages)
            self.store.save_findings(findings)

            document.risk_count = len(findings)
            document.status = DocumentStatus.COMPLETE
            self.store.save_document(document)

            result = DocumentResult(
                document=document,
                findings=sort_findings(findings),
                failed_pages=failed_pages,
                blank_pages=sum(1 for p in pages if not p or not p.strip())
            )
            if result.all_pages_failed:
                log.warning("Classification failed on every page", pages=len(pages))
            log.info("Analysis complete", risks=len(findings), failed_pages=failed_pages)
            return result

        except asyncio.CancelledError:
            self._mark_failed(document)
            log.warning("Analysis cancelled")
            raise
        except Exception as e:
            self._mark_failed(document)
            log.error("Analysis failed", error=str(e), exc_info=True)
            raise
        finally:
            self._release_scratch(scratch_path, document.id)

    async def _classify_pages(
        self,
        document: Document,
        pages: list[str]
    ) -> tuple[list[RiskFinding], list[int]]:
        """
        Fan out one classification task per page and wait for all of them.

        A failing or cancelled page contributes no findings and is reported
        in the returned list of failed page numbers.
        """
        semaphore = asyncio.Semaphore(self.settings.max_concurrent_pages)

        async def classify(page_number: int, text: str) -> list[RiskFinding] | None:
            async with semaphore:
                try:
                    return await self.classifier.classify_page_strict(
                        page_number, text, document.id
                    )
                except Exception as e:
                    logger.error(
                        "Page classification failed",
                        document_id=document.id,
                        page=page_number,
                        error=str(e)
                    )
                    return None

        page_numbers = list(range(1, len(pages) + 1))
        results = await asyncio.gather(
            *(classify(n, text) for n, text in zip(page_numbers, pages)),
            return_exceptions=True
        )

        findings: list[RiskFinding] = []
        failed_pages: list[int] = []
        for page_number, result in zip(page_numbers, results):
            if result is None or isinstance(result, BaseException):
                failed_pages.append(page_number)
                continue
            for finding in result:
                finding.document_id = document.id
            findings.extend(result)
        return findings, failed_pages

    def _mark_failed(self, document: Document) -> None:
        document.status = DocumentStatus.FAILED
        try:
            self.store.save_document(document)
        except Exception:
            # The analysis error is the one the caller sees
            logger.exception("Could not mark document failed", document_id=document.id)

    def _create_scratch_file(self) -> Path:
        """Create an empty, uniquely named scratch file owned by this call."""
        fd, name = tempfile.mkstemp(
            prefix=f"{SCRATCH_PREFIX}{uuid.uuid4().hex}_",
            suffix=SCRATCH_SUFFIX,
            dir=self.settings.scratch_dir
        )
        os.close(fd)
        return Path(name)

    async def _write_scratch(self, path: Path, raw_bytes: bytes) -> None:
        async with aiofiles.open(path, "wb") as out_file:
            await out_file.write(raw_bytes)

    def _release_scratch(self, path: Path | None, document_id: str) -> None:
        """Erase the scratch copy, retrying once through os.remove."""
        if path is None:
            return

        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Scratch delete failed, retrying", path=str(path), error=str(e))
            try:
                if os.path.exists(path):
                    os.remove(path)
            except OSError as retry_error:
                self._report_retention_failure(path, document_id, str(retry_error))
                return

        if os.path.exists(path):
            self._report_retention_failure(path, document_id, "file still present after delete")
            return
        logger.info("ZERO-RETENTION: scratch copy erased", path=path.name, document_id=document_id)

    def _report_retention_failure(self, path: Path, document_id: str, reason: str) -> None:
        failure = RetentionCleanupFailed(str(path), reason)
        logger.critical(
            "ZERO-RETENTION VIOLATION: scratch copy could not be erased, manual cleanup required",
            alert="zero_retention_violation",
            path=str(path),
            document_id=document_id,
            reason=reason
        )
        if self.retention_alert is not None:
            try:
                self.retention_alert(failure)
            except Exception:
                logger.exception("Retention alert hook failed", document_id=document_id)
