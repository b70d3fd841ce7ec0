"""Storage repository for projects, their segments and job logs."""

import json
import os
import threading
import uuid
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from scriptboard.core.config import Settings
from scriptboard.core.errors import (
    InputValidationError,
    PersistenceError,
    ProjectNotFound,
    SegmentNotFound,
)
from scriptboard.models.schemas import (
    SCHEMA_VERSION,
    JobLog,
    JobStatus,
    JobType,
    Project,
    ProjectStatus,
    Segment,
    utcnow,
)
from scriptboard.services.project_state import ensure_transition

PROTECTED_PROJECT_FIELDS = {"id", "owner_id", "created_at", "schema_version"}
PROTECTED_SEGMENT_FIELDS = {"id", "project_id", "segment_number", "created_at", "schema_version"}


class ProjectDocument(BaseModel):
    """Everything stored for one project, validated on every load."""

    schema_version: int = Field(default=SCHEMA_VERSION)
    project: Project
    segments: list[Segment] = Field(default_factory=list)
    job_logs: list[JobLog] = Field(default_factory=list)


class ProjectRepository:
    """
    One JSON document per project under `settings.storage_path`.

    Every read and write is owner-checked: a project owned by someone else
    is reported exactly like a missing one. Writes go to a temp file that
    replaces the document, so a document is never half-written.
    """

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize the repository.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger
        self.storage_path = Path(settings.storage_path)
        self.storage_path.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Document I/O
    # ------------------------------------------------------------------

    def _path(self, project_id: str) -> Path:
        if not project_id or "/" in project_id or "\\" in project_id or project_id.startswith("."):
            raise ProjectNotFound(project_id)
        return self.storage_path / f"{project_id}.json"

    def _read(self, project_id: str) -> ProjectDocument:
        file_path = self._path(project_id)
        if not file_path.exists():
            raise ProjectNotFound(project_id)
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            return ProjectDocument.model_validate(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise PersistenceError(f"Could not load project {project_id}: {e}") from e

    def _write(self, document: ProjectDocument) -> None:
        file_path = self._path(document.project.id)
        tmp_path = file_path.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(document.model_dump_json(indent=2))
            os.replace(tmp_path, file_path)
        except OSError as e:
            raise PersistenceError(f"Could not save project {document.project.id}: {e}") from e

    def _owned(self, project_id: str, owner_id: str) -> ProjectDocument:
        document = self._read(project_id)
        if document.project.owner_id != owner_id:
            self.logger.warning(f"Owner mismatch on project {project_id}")
            raise ProjectNotFound(project_id)
        return document

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, project: Project) -> Project:
        with self._lock:
            if self._path(project.id).exists():
                raise PersistenceError(f"Project already exists: {project.id}")
            self._write(ProjectDocument(project=project))
        self.logger.info(f"Project created: {project.id}")
        return project

    def get_project(self, project_id: str, owner_id: str) -> Project:
        with self._lock:
            return self._owned(project_id, owner_id).project

    def list_projects(self, owner_id: str) -> list[Project]:
        projects = []
        with self._lock:
            for file_path in sorted(self.storage_path.glob("*.json")):
                document = self._read(file_path.stem)
                if document.project.owner_id == owner_id:
                    projects.append(document.project)
        projects.sort(key=lambda p: p.created_at, reverse=True)
        return projects

    def update_project(self, project_id: str, owner_id: str, **fields: Any) -> Project:
        """
        Update project fields and bump updated_at.

        Raises:
            InputValidationError: For unknown or protected fields
        """
        bad = set(fields) & PROTECTED_PROJECT_FIELDS or set(fields) - set(Project.model_fields)
        if bad:
            raise InputValidationError(f"Cannot update project fields: {sorted(bad)}")

        with self._lock:
            document = self._owned(project_id, owner_id)
            data = document.project.model_dump()
            data.update(fields)
            data["updated_at"] = utcnow()
            try:
                document.project = Project.model_validate(data)
            except ValidationError as e:
                raise InputValidationError(f"Invalid project update: {e}") from e
            self._write(document)
            return document.project

    def delete_project(self, project_id: str, owner_id: str) -> None:
        with self._lock:
            self._owned(project_id, owner_id)
            try:
                self._path(project_id).unlink()
            except OSError as e:
                raise PersistenceError(f"Could not delete project {project_id}: {e}") from e
        self.logger.info(f"Project deleted: {project_id}")

    # ------------------------------------------------------------------
    # Segments
    # ------------------------------------------------------------------

    def get_segments(self, project_id: str, owner_id: str) -> list[Segment]:
        with self._lock:
            return sorted(self._owned(project_id, owner_id).segments, key=lambda s: s.segment_number)

    def get_segment(self, project_id: str, owner_id: str, segment_id: str) -> Segment:
        for segment in self.get_segments(project_id, owner_id):
            if segment.id == segment_id:
                return segment
        raise SegmentNotFound(segment_id)

    def replace_segments(
        self,
        project_id: str,
        owner_id: str,
        segments: list[Segment],
        optimized_script: Optional[str] = None,
        **project_fields: Any,
    ) -> list[Segment]:
        """
        Replace every segment of a project in one document write.

        The project's optimized script and any extra project fields are
        updated in the same write.

        Raises:
            InputValidationError: If numbering is not 1..n or a segment
                belongs to another project
        """
        numbers = [s.segment_number for s in segments]
        if numbers != list(range(1, len(segments) + 1)):
            raise InputValidationError(f"Segment numbers must run 1..{len(segments)} in order, got {numbers}")
        if any(s.project_id != project_id for s in segments):
            raise InputValidationError("Segment project_id does not match the project")

        with self._lock:
            document = self._owned(project_id, owner_id)
            document.segments = list(segments)
            data = document.project.model_dump()
            data.update(project_fields)
            if optimized_script is not None:
                data["optimized_script"] = optimized_script
            data["updated_at"] = utcnow()
            document.project = Project.model_validate(data)
            self._write(document)

        self.logger.info(f"Saved {len(segments)} segments for project {project_id}")
        return list(segments)

    def update_segment(self, project_id: str, owner_id: str, segment_id: str, **fields: Any) -> Segment:
        """
        Update one segment's fields.

        Raises:
            InputValidationError: For protected fields or an update that breaks
                segment invariants
            SegmentNotFound: If the segment is not in the project
        """
        bad = set(fields) & PROTECTED_SEGMENT_FIELDS or set(fields) - set(Segment.model_fields)
        if bad:
            raise InputValidationError(f"Cannot update segment fields: {sorted(bad)}")

        with self._lock:
            document = self._owned(project_id, owner_id)
            for index, segment in enumerate(document.segments):
                if segment.id != segment_id:
                    continue
                data = segment.model_dump()
                data.update(fields)
                data["updated_at"] = utcnow()
                try:
                    updated = Segment.model_validate(data)
                except ValidationError as e:
                    raise InputValidationError(f"Invalid segment update: {e}") from e
                document.segments[index] = updated
                self._write(document)
                return updated
        raise SegmentNotFound(segment_id)

    # ------------------------------------------------------------------
    # Job logs
    # ------------------------------------------------------------------

    def append_job_log(
        self,
        project_id: str,
        owner_id: str,
        job_type: JobType,
        status: JobStatus,
        error_message: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> JobLog:
        job = JobLog(
            id=uuid.uuid4().hex,
            project_id=project_id,
            job_type=job_type,
            status=status,
            error_message=error_message,
            details=details or {},
        )
        with self._lock:
            document = self._owned(project_id, owner_id)
            document.job_logs.append(job)
            self._write(document)
        return job

    def list_job_logs(self, project_id: str, owner_id: str) -> list[JobLog]:
        with self._lock:
            return list(self._owned(project_id, owner_id).job_logs)

    def transition_status(self, project_id: str, owner_id: str, status: ProjectStatus, **fields: Any) -> Project:
        """
        Move a project to a new status through the state machine.

        Raises:
            InvalidTransition: If the move is not in the transition table
        """
        with self._lock:
            current = self.get_project(project_id, owner_id).status
            ensure_transition(current, status)
            return self.update_project(project_id, owner_id, status=status, **fields)
