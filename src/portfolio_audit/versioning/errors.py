"""
Error taxonomy for the content versioning engine.

Every exception carries two messages:
- str(exc): detailed, for server-side logs (credentials already redacted)
- exc.public_message: safe to show to an admin user

Gateway-level errors describe what the git tool reported. Outcome-level
errors (CommitFailed, PushFailed, RevertConflict) describe what happened to
the caller's change.
"""

from typing import List, Optional

from ..server.logging_utils import redact_credentials


class VersioningError(Exception):
    """Base class for all content versioning errors."""

    public_message = "Sürüm kontrol işlemi başarısız oldu."

    def __init__(self, message: str, public_message: Optional[str] = None):
        super().__init__(redact_credentials(message))
        if public_message is not None:
            self.public_message = public_message


class NotARepository(VersioningError):
    """Working tree path is missing or is not a git repository."""

    public_message = (
        "Çalışma dizini bir git deposu değil. "
        "Lütfen PORTFOLIO_AUDIT_WORKING_TREE ayarını kontrol edin."
    )


class NoSuchRemote(VersioningError):
    """The configured remote does not exist in the working tree."""

    def __init__(self, remote_name: str):
        super().__init__(
            f"Remote not found: {remote_name}",
            public_message=f'"{remote_name}" adında bir uzak depo bulunamadı.',
        )
        self.remote_name = remote_name


class NoSuchBranch(VersioningError):
    """Requested branch is not known to the working tree."""

    def __init__(self, branch_name: str):
        super().__init__(
            f"Branch not found: {branch_name}",
            public_message=f"'{branch_name}' adında bir dal bulunamadı.",
        )
        self.branch_name = branch_name


class InvalidRevision(VersioningError):
    """A revision argument is not a plausible commit hash."""

    def __init__(self, revision: str):
        super().__init__(
            f"Invalid revision: {revision!r}",
            public_message="Geçerli bir commit hash'i gereklidir.",
        )
        self.revision = revision


class AuthenticationFailed(VersioningError):
    """Remote rejected the credentials."""

    public_message = (
        "GitHub kimlik doğrulaması başarısız oldu. Lütfen GITHUB_USERNAME ve "
        "GITHUB_TOKEN değerlerini kontrol edin."
    )


class MissingCredentials(AuthenticationFailed):
    """Username or token is not configured."""

    public_message = (
        "GitHub kullanıcı adı veya token tanımlanmamış. Lütfen GITHUB_USERNAME "
        "ve GITHUB_TOKEN değişkenlerini ekleyin."
    )


class Conflict(VersioningError):
    """The tool stopped because changes could not be applied cleanly."""

    public_message = "Değişiklikler çakışma nedeniyle uygulanamadı."


class DirtyOrMissingChanges(VersioningError):
    """Nothing to commit, or uncommitted changes block the operation."""

    public_message = "Commit atılacak bir değişiklik bulunamadı."


class ProcessFailure(VersioningError):
    """The git process failed, crashed or timed out.

    Keeps the raw command, return code and stderr for logging. None of it is
    part of public_message.
    """

    public_message = "Sürüm kontrol aracı beklenmedik bir hata verdi."

    def __init__(
        self,
        message: str,
        stderr: str = "",
        returncode: Optional[int] = None,
        command: Optional[List[str]] = None,
        timed_out: bool = False,
    ):
        super().__init__(message)
        self.stderr = redact_credentials(stderr or "")
        self.returncode = returncode
        self.command = [redact_credentials(part) for part in (command or [])]
        self.timed_out = timed_out

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.command:
            parts.append(f"Command: {' '.join(self.command)}")
        if self.returncode is not None:
            parts.append(f"Return code: {self.returncode}")
        if self.stderr:
            parts.append(f"stderr: {self.stderr.strip()}")
        return " | ".join(parts)


class CommitFailed(VersioningError):
    """Staging or committing failed; nothing was pushed."""

    public_message = "İçerik değişikliği commit'lenemedi."

    def __init__(self, message: str, cause: Optional[VersioningError] = None):
        super().__init__(message)
        self.cause = cause


class PushFailed(VersioningError):
    """The commit exists locally but could not be pushed to the remote."""

    def __init__(
        self,
        commit_hash: str,
        cause: Optional[VersioningError] = None,
    ):
        detail = str(cause) if cause is not None else "unknown push failure"
        super().__init__(
            f"Commit {commit_hash} created locally but push failed: {detail}"
        )
        self.commit_hash = commit_hash
        self.cause = cause

    @property
    def public_message(self) -> str:  # type: ignore[override]
        message = (
            f"Değişiklikler '{self.commit_hash[:7]}' olarak yerel depoya "
            "commit'lendi ancak GitHub'a gönderilemedi."
        )
        if isinstance(self.cause, AuthenticationFailed):
            message = f"{message} {self.cause.public_message}"
        return message


class RevertConflict(VersioningError):
    """Revert did not apply cleanly; the working tree was restored."""

    def __init__(self, target_hash: str, cause: Optional[VersioningError] = None):
        super().__init__(
            f"Revert of {target_hash} conflicted and was aborted",
            public_message=(
                f"'{target_hash[:7]}' hash'li commit çakışma nedeniyle geri "
                "alınamadı. Çalışma dizini temiz duruma getirildi."
            ),
        )
        self.target_hash = target_hash
        self.cause = cause


class InsufficientPrivilege(VersioningError):
    """Actor lacks the role required for the operation."""

    public_message = "Bu işlemi yapmak için yönetici yetkiniz bulunmamaktadır."


class GateTimeout(VersioningError):
    """Waited too long for the mutation gate."""

    public_message = (
        "Başka bir sürüm kontrol işlemi devam ediyor. Lütfen daha sonra tekrar deneyin."
    )


class OperationCancelled(VersioningError):
    """A queued operation was cancelled before it acquired the gate."""

    public_message = "İşlem başlamadan iptal edildi."
