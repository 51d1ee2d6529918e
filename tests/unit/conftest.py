"""
Shared fixtures: real git working trees with a local bare remote.

No git mocking here; tests that need fault injection patch the runner
themselves.
"""

import pytest

from portfolio_audit.versioning.mutation_serializer import MutationSerializer
from portfolio_audit.versioning.repository_gateway import RepositoryGateway
from tests.unit.git_helpers import (
    LocalRemoteInjector,
    commit_file,
    git,
    init_working_tree,
)


@pytest.fixture
def bare_remote(tmp_path):
    """Bare repository acting as the push target."""
    remote = tmp_path / "remote.git"
    remote.mkdir()
    git(remote, "init", "--bare")
    git(remote, "symbolic-ref", "HEAD", "refs/heads/main")
    return remote


@pytest.fixture
def empty_tree(tmp_path):
    """Working tree without any commit."""
    return init_working_tree(tmp_path / "empty-site")


@pytest.fixture
def working_tree(tmp_path, bare_remote):
    """Working tree with one commit, origin pointing at bare_remote."""
    tree = init_working_tree(tmp_path / "site")
    commit_file(tree, "README.md", "# Portfolio\n", "Initial commit")
    git(tree, "remote", "add", "origin", str(bare_remote))
    git(tree, "push", "origin", "HEAD:refs/heads/main")
    return tree


@pytest.fixture
def gateway(working_tree):
    return RepositoryGateway(working_tree)


@pytest.fixture
def serializer():
    return MutationSerializer(acquire_timeout=30)


@pytest.fixture
def local_injector(bare_remote):
    return LocalRemoteInjector(bare_remote)


@pytest.fixture
def remote_head(bare_remote):
    """Callable returning the current main hash of the bare remote."""

    def _head() -> str:
        return git(bare_remote, "rev-parse", "refs/heads/main")

    return _head
