"""Reconciliation schemas for the admin API."""

from pydantic import BaseModel, Field


class RepairRequest(BaseModel):
    """Repair run options."""

    dedupe: bool = False
    dry_run: bool = Field(False, alias="dryRun")

    model_config = {"populate_by_name": True}


class FindingDTO(BaseModel):
    """One reconciliation finding."""

    kind: str
    owner: str
    record_id: int | None = Field(None, alias="recordId")
    path: str | None = None
    record_ids: list[int] = Field(default_factory=list, alias="recordIds")
    detail: str = ""
    actionable: bool = True

    model_config = {"populate_by_name": True}


class DiagnoseResponse(BaseModel):
    """Diagnosis of the whole uploads tree and record set."""

    records: int
    files: int
    clean: bool
    summary: dict[str, int] = Field(default_factory=dict)
    findings: list[FindingDTO] = Field(default_factory=list)


class RepairStepDTO(BaseModel):
    """One planned or executed repair."""

    kind: str
    owner: str
    description: str
    applied: bool = False
    error: str | None = None


class RepairResponse(BaseModel):
    """Result of a repair run."""

    dry_run: bool = Field(False, alias="dryRun")
    dedupe: bool = False
    steps: list[RepairStepDTO] = Field(default_factory=list)
    copied_files: int = Field(0, alias="copiedFiles")
    removed_files: int = Field(0, alias="removedFiles")
    kept_files: int = Field(0, alias="keptFiles")
    saved_records: int = Field(0, alias="savedRecords")
    deleted_records: int = Field(0, alias="deletedRecords")
    failed: int = 0
    remaining: dict[str, int] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}
