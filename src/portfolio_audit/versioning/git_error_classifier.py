"""
Git error classifier.

Maps git stderr/stdout text to the categories the repository gateway turns
into typed errors. Patterns assume LC_ALL=C (set by git_runner).
"""

from typing import List

NOT_A_REPOSITORY_PATTERNS: List[str] = [
    "not a git repository",
    "cannot change to",
]

NO_SUCH_REMOTE_PATTERNS: List[str] = [
    "No such remote",
]

AUTHENTICATION_PATTERNS: List[str] = [
    "Authentication failed",
    "authentication failed",
    "Invalid username or password",
    "could not read Username",
    "could not read Password",
    "Permission denied",
    "The requested URL returned error: 401",
    "The requested URL returned error: 403",
    "terminal prompts disabled",
]

NETWORK_PATTERNS: List[str] = [
    "Could not resolve host",
    "Connection refused",
    "Connection timed out",
    "Network is unreachable",
    "Failed to connect",
    "unable to access",
    "SSL",
    "does not appear to be a git repository",
    "Repository not found",
]

CONFLICT_PATTERNS: List[str] = [
    "CONFLICT",
    "could not revert",
    "after resolving the conflicts",
    "Merge conflict",
]

DIRTY_TREE_PATTERNS: List[str] = [
    "would be overwritten",
    "Your local changes",
    "please commit your changes or stash them",
    "nothing to commit",
    "nothing added to commit",
    "no changes added to commit",
]

UNKNOWN_REVISION_PATTERNS: List[str] = [
    "bad revision",
    "unknown revision",
    "bad object",
    "not a valid object name",
]

UNKNOWN_BRANCH_PATTERNS: List[str] = [
    "did not match any file(s) known to git",
    "invalid reference",
]

EMPTY_HISTORY_PATTERNS: List[str] = [
    "does not have any commits yet",
    "bad default revision 'HEAD'",
    "ambiguous argument 'HEAD'",
]

# Checked in this order: the first category whose pattern matches wins.
_CATEGORY_PATTERNS = [
    ("not_a_repository", NOT_A_REPOSITORY_PATTERNS),
    ("no_such_remote", NO_SUCH_REMOTE_PATTERNS),
    ("empty_history", EMPTY_HISTORY_PATTERNS),
    ("authentication", AUTHENTICATION_PATTERNS),
    ("network", NETWORK_PATTERNS),
    ("conflict", CONFLICT_PATTERNS),
    ("dirty", DIRTY_TREE_PATTERNS),
    ("unknown_branch", UNKNOWN_BRANCH_PATTERNS),
    ("unknown_revision", UNKNOWN_REVISION_PATTERNS),
]


def classify_git_error(output: str) -> str:
    """
    Classify a failed git invocation from its combined stderr/stdout.

    Args:
        output: The raw text produced by the failed command.

    Returns:
        One of "not_a_repository", "no_such_remote", "empty_history",
        "authentication", "network", "conflict", "dirty", "unknown_branch",
        "unknown_revision" or "unknown".
    """
    if not output:
        return "unknown"

    for category, patterns in _CATEGORY_PATTERNS:
        for pattern in patterns:
            if pattern in output:
                return category

    return "unknown"
