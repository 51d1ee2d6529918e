"""
Content History REST API Router.

Admin endpoints over the content versioning engine: commit log, branches,
branch switch, revert, manual commit, change analysis and a connection test.

Endpoints are plain (sync) functions so FastAPI runs them in its thread
pool; the mutation gate serializes the ones that write to the working tree.
"""

import logging
from typing import List, NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from ...versioning.errors import (
    AuthenticationFailed,
    CommitFailed,
    Conflict,
    DirtyOrMissingChanges,
    GateTimeout,
    InsufficientPrivilege,
    InvalidRevision,
    NoSuchBranch,
    OperationCancelled,
    PushFailed,
    RevertConflict,
    VersioningError,
)
from ...versioning.history_reporter import MAX_HISTORY
from ...versioning.models import Actor
from ...versioning.service import ContentVersioningService, get_versioning_service
from ..auth.dependencies import get_current_actor, require_admin
from ..logging_utils import format_error_log, get_log_extra

logger = logging.getLogger(__name__)


class CommitEntry(BaseModel):
    """Commit as shown to clients (author e-mail removed)."""

    hash: str
    author_name: str
    timestamp_utc: int
    message: str
    iso_date: str


class BranchEntry(BaseModel):
    name: str
    is_current: bool = False


class BranchesResponse(BaseModel):
    branches: List[BranchEntry] = Field(default_factory=list)
    current: Optional[str] = None


class SwitchBranchRequest(BaseModel):
    branch: str = Field(description="Existing local branch to check out")


class SwitchBranchResponse(BaseModel):
    current_branch: str
    previous_branch: Optional[str] = None
    message: str


class RevertRequest(BaseModel):
    hash: str = Field(description="Full or abbreviated commit hash to revert")


class RevertResponse(BaseModel):
    reverted_hash: str
    revert_commit_hash: str
    message: str


class CommitAllRequest(BaseModel):
    message: str = Field(description="Commit message (prefixed with 'source:')")


class CommitResultResponse(BaseModel):
    committed: bool
    pushed: bool
    commit_hash: Optional[str] = None
    message: str


class ChangeSuggestionResponse(BaseModel):
    type: str
    scope: str
    subject: str
    header: str


class ConnectionTestResponse(BaseModel):
    ok: bool
    message: str


router = APIRouter(prefix="/api/admin/git", tags=["content-history"])


def get_service() -> ContentVersioningService:
    """Versioning service dependency (overridable in tests)."""
    return get_versioning_service()


def _status_for(error: VersioningError) -> int:
    if isinstance(error, InsufficientPrivilege):
        return status.HTTP_403_FORBIDDEN
    if isinstance(error, InvalidRevision):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, NoSuchBranch):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, (RevertConflict, Conflict, DirtyOrMissingChanges)):
        return status.HTTP_409_CONFLICT
    if isinstance(error, (PushFailed, AuthenticationFailed)):
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(error, (GateTimeout, OperationCancelled)):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _raise_http(operation: str, error: VersioningError) -> NoReturn:
    """Translate a versioning error to an HTTPException with a public message."""
    status_code = _status_for(error)
    if status_code >= 500 and not isinstance(error, (PushFailed, CommitFailed)):
        logger.error(
            format_error_log("VCS-API-001", f"{operation} failed: {error}"),
            extra=get_log_extra("VCS-API-001"),
        )
    else:
        logger.warning(f"{operation} rejected ({status_code}): {error}")

    detail = {"error": error.public_message}
    if isinstance(error, PushFailed):
        detail["commit_hash"] = error.commit_hash
    raise HTTPException(status_code=status_code, detail=detail) from error


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": message})


@router.get("/log", response_model=List[CommitEntry])
def get_log(
    limit: int = Query(default=MAX_HISTORY, ge=1, le=MAX_HISTORY),
    actor: Actor = Depends(get_current_actor),
    service: ContentVersioningService = Depends(get_service),
) -> List[CommitEntry]:
    """
    Get the newest commits of the content repository.

    Available to any authenticated actor. Author e-mail addresses are removed
    before responding.
    """
    try:
        history = service.get_history(limit)
    except VersioningError as e:
        _raise_http("get_log", e)
    return [CommitEntry(**commit.to_dict(include_email=False)) for commit in history]


@router.get("/branches", response_model=BranchesResponse)
def get_branches(
    actor: Actor = Depends(get_current_actor),
    service: ContentVersioningService = Depends(get_service),
) -> BranchesResponse:
    try:
        branches = service.list_branches()
    except VersioningError as e:
        _raise_http("list_branches", e)
    current = next((b.name for b in branches if b.is_current), None)
    return BranchesResponse(
        branches=[BranchEntry(name=b.name, is_current=b.is_current) for b in branches],
        current=current,
    )


@router.post("/switch-branch", response_model=SwitchBranchResponse)
def switch_branch(
    request: SwitchBranchRequest,
    actor: Actor = Depends(require_admin),
    service: ContentVersioningService = Depends(get_service),
) -> SwitchBranchResponse:
    """Check out an existing local branch of the shared working tree."""
    if not request.branch.strip():
        raise _bad_request("Geçerli bir dal adı gereklidir.")
    try:
        result = service.switch_checkout(request.branch, actor)
    except VersioningError as e:
        _raise_http("switch_branch", e)
    return SwitchBranchResponse(
        current_branch=result.current_branch,
        previous_branch=result.previous_branch,
        message=f"'{result.current_branch}' dalına geçildi.",
    )


@router.post("/revert", response_model=RevertResponse)
def revert(
    request: RevertRequest,
    actor: Actor = Depends(require_admin),
    service: ContentVersioningService = Depends(get_service),
) -> RevertResponse:
    """
    Revert a commit and push the revert.

    Raises:
        HTTPException 400: Malformed or unknown hash
        HTTPException 409: Revert conflicted (working tree restored)
        HTTPException 502: Revert committed locally but not pushed
    """
    if not request.hash.strip():
        raise _bad_request("Geçerli bir commit hash'i gereklidir.")
    try:
        result = service.revert_commit(request.hash, actor.identity)
    except VersioningError as e:
        _raise_http("revert", e)
    return RevertResponse(
        reverted_hash=result.reverted_hash,
        revert_commit_hash=result.revert_commit_hash,
        message=f"'{result.reverted_hash[:7]}' hash'li commit başarıyla geri alındı.",
    )


@router.post("/commit-all", response_model=CommitResultResponse)
def commit_all(
    request: CommitAllRequest,
    actor: Actor = Depends(require_admin),
    service: ContentVersioningService = Depends(get_service),
) -> CommitResultResponse:
    """Commit every pending change with a caller-supplied message and push."""
    if not request.message.strip():
        raise _bad_request("Geçerli bir commit mesajı gereklidir.")
    try:
        result = service.commit_all_changes(request.message, actor.identity)
    except VersioningError as e:
        _raise_http("commit_all", e)

    if not result.committed:
        message = "Commit atılacak bir değişiklik bulunamadı."
    else:
        message = "Değişiklikler başarıyla commit'lendi ve GitHub'a gönderildi."
    return CommitResultResponse(
        committed=result.committed,
        pushed=result.pushed,
        commit_hash=result.commit_hash,
        message=message,
    )


@router.post("/analyze-changes", response_model=ChangeSuggestionResponse)
def analyze_changes(
    actor: Actor = Depends(require_admin),
    service: ContentVersioningService = Depends(get_service),
) -> ChangeSuggestionResponse:
    try:
        suggestion = service.analyze_changes()
    except VersioningError as e:
        _raise_http("analyze_changes", e)
    return ChangeSuggestionResponse(
        type=suggestion.type,
        scope=suggestion.scope,
        subject=suggestion.subject,
        header=suggestion.header(),
    )


@router.post(
    "/test-connection",
    response_model=ConnectionTestResponse,
    responses={502: {"description": "Remote rejected or unreachable"}},
)
def test_connection(
    actor: Actor = Depends(require_admin),
    service: ContentVersioningService = Depends(get_service),
) -> ConnectionTestResponse:
    """Check credentials and remote reachability without changing anything."""
    try:
        result = service.test_connection()
    except VersioningError as e:
        _raise_http("test_connection", e)
    if not result.ok:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": f"GitHub bağlantı testi başarısız: {result.message}"},
        )
    return ConnectionTestResponse(ok=True, message=result.message)
