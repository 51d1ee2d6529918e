"""Git CLI commands for portfolio-audit.

Operator access to the content versioning engine of a local working tree:
status, history, commits, revert, branches and a connection test.
"""

import sys
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .cli_utils import format_json_error, format_json_success
from .versioning.errors import PushFailed, VersioningError
from .versioning.models import ADMIN_ROLE, Actor, ChangeAction, ChangeDescriptor

console = Console()


def _get_service(ctx: click.Context):
    """Build the versioning service once per invocation.

    Raises:
        click.ClickException: If the configuration is invalid
    """
    from .server.logging_utils import setup_logging
    from .server.utils.config_manager import AuditConfigManager
    from .versioning.service import ContentVersioningService

    obj = ctx.ensure_object(dict)
    if "service" not in obj:
        manager = AuditConfigManager(obj.get("data_dir"))
        try:
            config = manager.load_or_create_config()
            assert config.repository_config is not None
            if obj.get("working_tree"):
                config.repository_config.working_tree_path = obj["working_tree"]
            if obj.get("log_level"):
                config.log_level = obj["log_level"].upper()
            manager.validate_config(config)
        except ValueError as e:
            raise click.ClickException(str(e))

        setup_logging(config.log_level)
        obj["service"] = ContentVersioningService(config)
    return obj["service"]


def _handle_git_error(e: Exception, json_output: bool) -> None:
    """Handle command errors with appropriate output format."""
    if isinstance(e, VersioningError):
        message = e.public_message
    else:
        message = str(e)

    details = None
    if isinstance(e, PushFailed):
        details = {"commit_hash": e.commit_hash}

    if json_output:
        click.echo(format_json_error(message, type(e).__name__, details))
    else:
        console.print(f"[red]Error: {message}[/red]")
        if details:
            console.print(f"[yellow]Local commit: {e.commit_hash}[/yellow]")  # type: ignore[attr-defined]
    sys.exit(1)


def _operator(actor: Optional[str]) -> Actor:
    """The shell operator acts with the admin role."""
    return Actor(identity=actor or "cli", role=ADMIN_ROLE)


@click.group("portfolio-audit")
@click.version_option(__version__)
@click.option(
    "--working-tree",
    "-C",
    type=click.Path(file_okay=False),
    help="Working tree to operate on (overrides configuration)",
)
@click.option("--data-dir", type=click.Path(file_okay=False), help="Configuration directory")
@click.option("--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)")
@click.pass_context
def git_group(
    ctx: click.Context,
    working_tree: Optional[str],
    data_dir: Optional[str],
    log_level: Optional[str],
):
    """Version-controlled audit trail for portfolio content.

    Every content change is one commit pushed to the configured remote.
    """
    ctx.ensure_object(dict)
    ctx.obj.update(working_tree=working_tree, data_dir=data_dir, log_level=log_level)


@git_group.command("status")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def git_status(ctx: click.Context, json_output: bool):
    """Show working tree status."""
    try:
        result = _get_service(ctx).get_status()

        if json_output:
            click.echo(
                format_json_success(
                    {
                        "staged": result.staged,
                        "unstaged": result.unstaged,
                        "untracked": result.untracked,
                    }
                )
            )
        else:
            if result.staged:
                console.print("\n[green]Staged changes:[/green]")
                for f in result.staged:
                    console.print(f"  {f}")
            if result.unstaged:
                console.print("\n[yellow]Unstaged changes:[/yellow]")
                for f in result.unstaged:
                    console.print(f"  {f}")
            if result.untracked:
                console.print("\n[dim]Untracked files:[/dim]")
                for f in result.untracked:
                    console.print(f"  {f}")
            if result.is_clean:
                console.print("[green]Working tree clean[/green]")

    except Exception as e:
        _handle_git_error(e, json_output)


@git_group.command("history")
@click.option("--limit", "-n", default=50, show_default=True, help="Number of commits (max 50)")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def git_history(ctx: click.Context, limit: int, json_output: bool):
    """Show the newest commits, newest first."""
    try:
        commits = _get_service(ctx).get_history(limit)

        if json_output:
            click.echo(format_json_success([commit.to_dict() for commit in commits]))
            return

        if not commits:
            console.print("[dim]No commits yet[/dim]")
            return

        table = Table(title="Content history")
        table.add_column("Hash", style="cyan", no_wrap=True)
        table.add_column("Date")
        table.add_column("Author")
        table.add_column("Message")
        for commit in commits:
            table.add_row(
                commit.hash[:7],
                commit.iso_date,
                commit.author_name,
                commit.message.splitlines()[0] if commit.message else "",
            )
        console.print(table)

    except Exception as e:
        _handle_git_error(e, json_output)


@git_group.command("record")
@click.option(
    "--action",
    type=click.Choice([a.value for a in ChangeAction]),
    required=True,
    help="Kind of content mutation",
)
@click.option("--type", "content_type", required=True, help="Content type, e.g. blog")
@click.option("--slug", required=True, help="Slug of the changed record")
@click.option("--actor", required=True, help="Identity of the editor")
@click.option("--path", "paths", multiple=True, help="Restrict the commit to these paths")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def git_record(
    ctx: click.Context,
    action: str,
    content_type: str,
    slug: str,
    actor: str,
    paths: Tuple[str, ...],
    json_output: bool,
):
    """Commit and push the change of one content record."""
    try:
        descriptor = ChangeDescriptor(
            action=ChangeAction(action),
            content_type=content_type,
            slug=slug,
            actor_identity=actor,
            paths=paths,
        )
        result = _get_service(ctx).record_change(descriptor)
        _print_commit_result(result, json_output)

    except Exception as e:
        _handle_git_error(e, json_output)


@git_group.command("commit-all")
@click.option("--message", "-m", required=True, help="Commit message")
@click.option("--actor", help="Identity recorded in the message")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def git_commit_all(
    ctx: click.Context, message: str, actor: Optional[str], json_output: bool
):
    """Commit every pending change and push."""
    try:
        result = _get_service(ctx).commit_all_changes(message, _operator(actor).identity)
        _print_commit_result(result, json_output)

    except Exception as e:
        _handle_git_error(e, json_output)


def _print_commit_result(result, json_output: bool) -> None:
    if json_output:
        click.echo(
            format_json_success(
                {
                    "committed": result.committed,
                    "pushed": result.pushed,
                    "commit_hash": result.commit_hash,
                    "message": result.message,
                }
            )
        )
    elif not result.committed:
        console.print("[yellow]No changes to commit[/yellow]")
    else:
        console.print(f"[green]Committed and pushed {result.commit_hash[:7]}[/green]")
        console.print(f"  {result.message}")


@git_group.command("revert")
@click.argument("commit_hash")
@click.option("--actor", help="Identity recorded in the log")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def git_revert(
    ctx: click.Context, commit_hash: str, actor: Optional[str], json_output: bool
):
    """Revert COMMIT_HASH and push the revert commit."""
    try:
        result = _get_service(ctx).revert_commit(commit_hash, _operator(actor).identity)

        if json_output:
            click.echo(
                format_json_success(
                    {
                        "reverted_hash": result.reverted_hash,
                        "revert_commit_hash": result.revert_commit_hash,
                        "pushed": result.pushed,
                    }
                )
            )
        else:
            console.print(
                f"[green]Reverted {result.reverted_hash[:7]} "
                f"as {result.revert_commit_hash[:7]}[/green]"
            )

    except Exception as e:
        _handle_git_error(e, json_output)


@git_group.command("branches")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def git_branches(ctx: click.Context, json_output: bool):
    """List local branches."""
    try:
        branches = _get_service(ctx).list_branches()

        if json_output:
            click.echo(
                format_json_success(
                    [{"name": b.name, "is_current": b.is_current} for b in branches]
                )
            )
        else:
            for branch in branches:
                if branch.is_current:
                    console.print(f"[green]* {branch.name}[/green]")
                else:
                    console.print(f"  {branch.name}")

    except Exception as e:
        _handle_git_error(e, json_output)


@git_group.command("switch")
@click.argument("branch")
@click.option("--actor", help="Identity recorded in the log")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def git_switch(ctx: click.Context, branch: str, actor: Optional[str], json_output: bool):
    """Check out an existing local BRANCH."""
    try:
        result = _get_service(ctx).switch_checkout(branch, _operator(actor))

        if json_output:
            click.echo(
                format_json_success(
                    {
                        "current_branch": result.current_branch,
                        "previous_branch": result.previous_branch,
                    }
                )
            )
        else:
            console.print(f"[green]Switched to '{result.current_branch}'[/green]")

    except Exception as e:
        _handle_git_error(e, json_output)


@git_group.command("test-connection")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def git_test_connection(ctx: click.Context, json_output: bool):
    """Check credentials and remote reachability."""
    try:
        result = _get_service(ctx).test_connection()

        if json_output:
            click.echo(format_json_success({"ok": result.ok, "message": result.message}))
        elif result.ok:
            console.print(f"[green]{result.message}[/green]")
        else:
            console.print(f"[red]{result.message}[/red]")

        if not result.ok:
            sys.exit(1)

    except VersioningError as e:
        _handle_git_error(e, json_output)


@git_group.command("analyze")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def git_analyze(ctx: click.Context, json_output: bool):
    """Suggest a Conventional Commits header for pending changes."""
    try:
        service = _get_service(ctx)
        suggestion = service.analyze_changes()

        if json_output:
            click.echo(
                format_json_success(
                    {
                        "type": suggestion.type,
                        "scope": suggestion.scope,
                        "subject": suggestion.subject,
                        "header": suggestion.header(),
                    }
                )
            )
        else:
            console.print(suggestion.header())

    except Exception as e:
        _handle_git_error(e, json_output)


@git_group.command("repo-url")
@click.pass_context
def git_repo_url(ctx: click.Context):
    """Print the browser URL of the configured remote."""
    url = _get_service(ctx).public_repo_url()
    if url is None:
        raise click.ClickException("Remote URL could not be determined")
    click.echo(url)


def main() -> None:
    git_group(obj={})


if __name__ == "__main__":
    main()
