"""
Tests for BranchManager - branch listing and admin-only checkout switch.
"""

import pytest

from portfolio_audit.versioning.branch_manager import BranchManager
from portfolio_audit.versioning.errors import (
    DirtyOrMissingChanges,
    InsufficientPrivilege,
    NoSuchBranch,
)
from portfolio_audit.versioning.models import Actor
from tests.unit.git_helpers import commit_file, git, write_file

ADMIN = Actor(identity="admin@example.com", role="admin")
EDITOR = Actor(identity="editor@example.com", role="editor")


@pytest.fixture
def manager(gateway, serializer, working_tree):
    git(working_tree, "branch", "feature")
    return BranchManager(gateway, serializer)


def test_list_branches(manager):
    branches = {b.name: b.is_current for b in manager.list_branches()}

    assert branches == {"main": True, "feature": False}


def test_admin_can_switch(manager, working_tree):
    result = manager.switch_checkout("feature", ADMIN)

    assert result.current_branch == "feature"
    assert result.previous_branch == "main"
    assert git(working_tree, "branch", "--show-current") == "feature"
    assert not manager.serializer.is_locked


def test_switch_to_current_branch_is_noop(manager):
    result = manager.switch_checkout("main", ADMIN)

    assert result.current_branch == "main"
    assert result.previous_branch == "main"


def test_non_admin_rejected(manager, working_tree):
    with pytest.raises(InsufficientPrivilege):
        manager.switch_checkout("feature", EDITOR)

    assert git(working_tree, "branch", "--show-current") == "main"


def test_unknown_branch(manager):
    with pytest.raises(NoSuchBranch) as exc_info:
        manager.switch_checkout("release", ADMIN)

    assert exc_info.value.branch_name == "release"
    assert not manager.serializer.is_locked


def test_local_changes_block_switch(manager, working_tree):
    git(working_tree, "checkout", "feature")
    commit_file(working_tree, "README.md", "# Feature readme\n", "feature readme")
    git(working_tree, "checkout", "main")
    write_file(working_tree, "README.md", "# Uncommitted\n")

    with pytest.raises(DirtyOrMissingChanges):
        manager.switch_checkout("feature", ADMIN)

    assert git(working_tree, "branch", "--show-current") == "main"
    assert not manager.serializer.is_locked
