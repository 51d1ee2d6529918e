"""
Tests for RevertController - revert state machine with abort on conflict.
"""

import logging
from unittest.mock import MagicMock

import pytest

from portfolio_audit.versioning.change_commit_coordinator import ChangeCommitCoordinator
from portfolio_audit.versioning.errors import (
    Conflict,
    InvalidRevision,
    ProcessFailure,
    PushFailed,
    RevertConflict,
)
from portfolio_audit.versioning.mutation_serializer import MutationSerializer
from portfolio_audit.versioning.revert_controller import (
    RevertAttempt,
    RevertController,
    RevertPhase,
)
from tests.unit.git_helpers import LocalRemoteInjector, commit_count, commit_file, git

ACTOR = "admin@example.com"


def _controller(gateway, serializer, injector):
    coordinator = ChangeCommitCoordinator(gateway, serializer, injector, target_branch="main")
    return RevertController(gateway, serializer, coordinator)


@pytest.fixture
def controller(gateway, serializer, local_injector):
    return _controller(gateway, serializer, local_injector)


class TestRevertAgainstRealRepository:
    def test_clean_revert_creates_one_commit_and_pushes(
        self, controller, working_tree, remote_head
    ):
        target = commit_file(working_tree, "content/blog/a.md", "a\n", "add a")
        before = commit_count(working_tree)

        result = controller.revert_commit(target, ACTOR)

        assert commit_count(working_tree) == before + 1
        assert result.reverted_hash == target
        assert result.revert_commit_hash == git(working_tree, "rev-parse", "HEAD")
        assert remote_head() == result.revert_commit_hash
        assert not (working_tree / "content" / "blog" / "a.md").exists()
        assert not controller.serializer.is_locked

    def test_conflicting_revert_leaves_clean_tree(self, controller, working_tree):
        target = commit_file(working_tree, "page.md", "line one\n", "first version")
        commit_file(working_tree, "page.md", "line two\n", "second version")
        head_before = git(working_tree, "rev-parse", "HEAD")

        with pytest.raises(RevertConflict) as exc_info:
            controller.revert_commit(target, ACTOR)

        assert exc_info.value.target_hash == target
        assert isinstance(exc_info.value.cause, Conflict)
        assert git(working_tree, "rev-parse", "HEAD") == head_before
        assert git(working_tree, "status", "--porcelain") == ""
        assert controller.gateway.revert_in_progress() is False
        assert (working_tree / "page.md").read_text() == "line two\n"
        assert not controller.serializer.is_locked

    @pytest.mark.parametrize(
        "subject",
        [
            "source: update SSL settings (admin) [ci skip]",
            "settings: 'Permission denied page' güncellendi by a@example.com. [ci skip]",
            "blog: 'Repository not found' oluşturuldu by a@example.com. [ci skip]",
            "source: fix Connection refused banner (admin) [ci skip]",
        ],
    )
    def test_conflict_detected_whatever_the_subject(self, controller, working_tree, subject):
        target = commit_file(working_tree, "settings.json", '{"ssl": true}\n', subject)
        commit_file(working_tree, "settings.json", '{"ssl": false}\n', "later edit")

        with pytest.raises(RevertConflict):
            controller.revert_commit(target, ACTOR)

        assert git(working_tree, "status", "--porcelain") == ""
        assert controller.gateway.revert_in_progress() is False

    def test_actor_logged_on_success(self, controller, working_tree, caplog):
        caplog.set_level(logging.INFO, logger="portfolio_audit.versioning.revert_controller")
        target = commit_file(working_tree, "content/blog/a.md", "a\n", "add a")

        controller.revert_commit(target, "editor-in-chief@example.com")

        assert any(
            "editor-in-chief@example.com" in r.getMessage() and target[:7] in r.getMessage()
            for r in caplog.records
        )

    def test_actor_logged_on_failure(self, controller, working_tree, caplog):
        caplog.set_level(logging.INFO, logger="portfolio_audit.versioning.revert_controller")
        target = commit_file(working_tree, "page.md", "one\n", "v1")
        commit_file(working_tree, "page.md", "two\n", "v2")

        with pytest.raises(RevertConflict):
            controller.revert_commit(target, "editor-in-chief@example.com")

        failures = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert any("editor-in-chief@example.com" in r.getMessage() for r in failures)

    def test_push_failure_retains_revert_commit(
        self, gateway, serializer, working_tree, tmp_path, remote_head
    ):
        target = commit_file(working_tree, "content/blog/a.md", "a\n", "add a")
        remote_before = remote_head()
        controller = _controller(gateway, serializer, LocalRemoteInjector(tmp_path / "gone.git"))

        with pytest.raises(PushFailed) as exc_info:
            controller.revert_commit(target, ACTOR)

        head = git(working_tree, "rev-parse", "HEAD")
        assert exc_info.value.commit_hash == head
        assert git(working_tree, "log", "-1", "--format=%s").startswith('Revert "add a"')
        assert remote_head() == remote_before
        assert not serializer.is_locked

    def test_malformed_hash_rejected_before_gate(self, controller):
        with pytest.raises(InvalidRevision):
            controller.revert_commit("HEAD~1", ACTOR)

    def test_unknown_hash(self, controller, working_tree):
        head_before = git(working_tree, "rev-parse", "HEAD")

        with pytest.raises(InvalidRevision):
            controller.revert_commit("0123456789abcdef0123", ACTOR)

        assert git(working_tree, "rev-parse", "HEAD") == head_before
        assert not controller.serializer.is_locked


class TestStateMachine:
    """Transitions in isolation with a mocked gateway."""

    @pytest.fixture
    def parts(self):
        gateway = MagicMock()
        coordinator = MagicMock()
        controller = RevertController(gateway, MutationSerializer(), coordinator)
        return controller, gateway, coordinator

    def test_happy_path_phases(self, parts):
        controller, gateway, coordinator = parts
        gateway.revert.return_value = "f" * 40
        attempt = RevertAttempt(target_hash="a" * 40)

        assert controller.begin(attempt) == RevertPhase.APPLYING
        assert controller.apply(attempt) == RevertPhase.PUSHING_AFTER_REVERT
        assert attempt.revert_commit_hash == "f" * 40
        assert controller.push(attempt) == RevertPhase.DONE
        coordinator.push_commit.assert_called_once_with("f" * 40)

    def test_conflict_goes_to_aborting_then_failed(self, parts):
        controller, gateway, _ = parts
        gateway.revert.side_effect = Conflict("could not revert")
        attempt = RevertAttempt(target_hash="a" * 40)

        assert controller.apply(attempt) == RevertPhase.ABORTING
        assert isinstance(attempt.error, RevertConflict)
        assert controller.abort(attempt) == RevertPhase.FAILED
        gateway.revert_abort.assert_called_once()

    def test_abort_error_is_swallowed(self, parts):
        controller, gateway, _ = parts
        gateway.revert.side_effect = Conflict("could not revert")
        gateway.revert_abort.side_effect = ProcessFailure("abort failed")
        attempt = RevertAttempt(target_hash="a" * 40)

        controller.run(attempt)

        assert attempt.phase == RevertPhase.FAILED
        assert isinstance(attempt.error, RevertConflict)

    def test_other_apply_error_aborts_only_when_revert_in_progress(self, parts):
        controller, gateway, _ = parts
        gateway.revert.side_effect = ProcessFailure("crashed")
        gateway.revert_in_progress.return_value = False
        attempt = RevertAttempt(target_hash="a" * 40)

        controller.run(attempt)

        assert attempt.phase == RevertPhase.FAILED
        assert isinstance(attempt.error, ProcessFailure)
        gateway.revert_abort.assert_not_called()

    def test_push_failure_goes_to_failed(self, parts):
        controller, gateway, coordinator = parts
        gateway.revert.return_value = "f" * 40
        coordinator.push_commit.side_effect = PushFailed("f" * 40)
        attempt = RevertAttempt(target_hash="a" * 40)

        controller.run(attempt)

        assert attempt.phase == RevertPhase.FAILED
        assert isinstance(attempt.error, PushFailed)
        gateway.revert_abort.assert_not_called()

    def test_revert_commit_reraises_original_error(self, parts):
        controller, gateway, _ = parts
        gateway.revert.side_effect = ProcessFailure("crashed")
        gateway.revert_in_progress.return_value = True

        with pytest.raises(ProcessFailure):
            controller.revert_commit("a" * 40, ACTOR)

        gateway.revert_abort.assert_called_once()
        assert not controller.serializer.is_locked
