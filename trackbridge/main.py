"""trackbridge CLI — all commands."""

import functools
from collections.abc import Callable
from pathlib import Path
from typing import Annotated, Any

import tomlkit
import typer
from rich import print as rprint
from rich.table import Table

from trackbridge import server
from trackbridge.client import execute_command
from trackbridge.errors import BridgeError, ConfigurationError, ValidationError
from trackbridge.llm import ClaudeClient, plan_subtasks, plan_tasks
from trackbridge.log import configure_logging
from trackbridge.models import PlannedTask
from trackbridge.registry import SUPPORTED_PLATFORMS
from trackbridge.settings import CONFIG_PATH, BridgeSettings, get_settings, secret_value

app = typer.Typer(help="trackbridge: JIRA + GitLab issues through the line-protocol bridge", no_args_is_help=True)

PlatformOpt = Annotated[
    str | None,
    typer.Option("--platform", "-P", help="jira or gitlab (default: DEFAULT_PLATFORM)"),
]
ProjectOpt = Annotated[
    str | None,
    typer.Option("--project", "-p", help="JIRA project key (default: JIRA_PROJECT)"),
]
LimitOpt = Annotated[int, typer.Option("--limit", "-l", min=1, help="Maximum number of issues to retrieve")]


@app.callback()
def _setup() -> None:
    configure_logging(get_settings().log_level)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _reports_errors(func: Callable[..., None]) -> Callable[..., None]:
    """Turn BridgeError into ``Error: <message>`` on stderr and exit status 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> None:
        try:
            func(*args, **kwargs)
        except BridgeError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(1) from exc

    return wrapper


def _platform(platform: str | None, settings: BridgeSettings) -> str:
    name = (platform or settings.default_platform or SUPPORTED_PLATFORMS[0]).lower()
    if name not in SUPPORTED_PLATFORMS:
        raise ValidationError(f"Unsupported platform: {name}. Valid: {', '.join(SUPPORTED_PLATFORMS)}")
    return name


def _project_key(project: str | None, settings: BridgeSettings) -> str:
    key = project or settings.jira_project
    if not key:
        raise ValidationError("Project key is required. Use --project option or set JIRA_PROJECT in .env")
    return key


def _claude(settings: BridgeSettings) -> ClaudeClient:
    api_key = secret_value(settings.anthropic_api_key)
    if not api_key:
        raise ConfigurationError("ANTHROPIC_API_KEY is required for this command")
    return ClaudeClient(api_key, settings.anthropic_model)


def _compact(params: dict) -> dict:
    return {k: v for k, v in params.items() if v is not None}


def _issue_ref(platform: str, issue: dict) -> str:
    if platform == "jira":
        return issue.get("key", "?")
    return f"#{issue.get('iid', '?')} {issue.get('web_url', '')}".rstrip()


def _jira_row(issue: dict) -> tuple[str, str, str]:
    fields = issue.get("fields") or {}
    status = (fields.get("status") or {}).get("name", "—")
    return issue.get("key", "?"), fields.get("summary", ""), status


def _gitlab_row(issue: dict) -> tuple[str, str, str]:
    return f"#{issue.get('iid', '?')}", issue.get("title", ""), issue.get("state", "—")


def _print_issues(platform: str, result: Any) -> None:
    if platform == "jira":
        rows = [_jira_row(i) for i in (result or {}).get("issues", [])]
    else:
        rows = [_gitlab_row(i) for i in result or []]

    if not rows:
        typer.echo("No issues found.")
        return

    table = Table(title=f"Found {len(rows)} issues")
    table.add_column("Key", style="cyan")
    table.add_column("Summary")
    table.add_column("Status")
    for row in rows:
        table.add_row(*row)
    rprint(table)


def _task_params(platform: str, task: PlannedTask, project_key: str | None) -> dict:
    if platform == "jira":
        return {
            "platform": "jira",
            "projectKey": project_key,
            "summary": task.summary,
            "description": task.description,
            "issueType": task.issue_type,
        }
    return {"platform": "gitlab", "title": task.summary, "description": task.description}


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("list")
@_reports_errors
def list_issues(platform: PlatformOpt = None, project: ProjectOpt = None, limit: LimitOpt = 10) -> None:
    """List the newest issues in a JIRA project, or open issues in the GitLab project."""
    settings = get_settings()
    target = _platform(platform, settings)

    if target == "jira":
        project_key = _project_key(project, settings)
        typer.echo(f"Fetching issues for project: {project_key}...")
        params = {
            "platform": "jira",
            "jql": f"project={project_key} ORDER BY created DESC",
            "options": {"maxResults": limit},
        }
    else:
        typer.echo("Fetching open issues...")
        params = {"platform": "gitlab", "maxResults": limit}

    _print_issues(target, execute_command("search_issues", params))


@app.command("search")
@_reports_errors
def search(
    query: Annotated[str, typer.Argument(help="JQL for JIRA, free text for GitLab")],
    platform: PlatformOpt = None,
    limit: LimitOpt = 20,
) -> None:
    """Search issues."""
    target = _platform(platform, get_settings())
    if target == "jira":
        params = {"platform": "jira", "jql": query, "options": {"maxResults": limit}}
    else:
        params = {"platform": "gitlab", "search": query, "maxResults": limit}
    _print_issues(target, execute_command("search_issues", params))


@app.command("create")
@_reports_errors
def create(
    title: Annotated[str, typer.Argument(help="Issue title / summary")],
    description: Annotated[str | None, typer.Argument(help="Issue description")] = None,
    platform: PlatformOpt = None,
    project: ProjectOpt = None,
    issue_type: Annotated[str, typer.Option("--type", "-t", help="JIRA issue type")] = "Task",
    label: Annotated[list[str] | None, typer.Option("--label", help="Label (repeatable)")] = None,
    assignee: Annotated[str | None, typer.Option("--assignee", help="JIRA assignee name")] = None,
    assignee_id: Annotated[int | None, typer.Option("--assignee-id", help="GitLab assignee user id")] = None,
) -> None:
    """Create a new issue."""
    settings = get_settings()
    target = _platform(platform, settings)

    if target == "jira":
        params = {
            "platform": "jira",
            "projectKey": _project_key(project, settings),
            "summary": title,
            "description": description,
            "issueType": issue_type,
            "labels": label,
            "assignee": assignee,
        }
    else:
        params = {
            "platform": "gitlab",
            "title": title,
            "description": description,
            "labels": label,
            "assigneeId": assignee_id,
        }

    created = execute_command("create_issue", _compact(params))
    rprint(f"[green]✓[/green] Created issue: [bold]{_issue_ref(target, created)}[/bold]")


@app.command("update")
@_reports_errors
def update(
    issue_key: Annotated[str, typer.Argument(help="JIRA key (PROJ-123) or GitLab issue iid")],
    platform: PlatformOpt = None,
    title: Annotated[str | None, typer.Option("--title", help="New title / summary")] = None,
    description: Annotated[str | None, typer.Option("--description", help="New description")] = None,
    assignee: Annotated[str | None, typer.Option("--assignee", help="JIRA assignee name")] = None,
    assignee_id: Annotated[int | None, typer.Option("--assignee-id", help="GitLab assignee user id")] = None,
    label: Annotated[list[str] | None, typer.Option("--label", help="Replace labels (repeatable)")] = None,
    status: Annotated[
        str | None,
        typer.Option("--status", help="JIRA status to transition to, or GitLab close/reopen"),
    ] = None,
) -> None:
    """Update only the given fields of an issue."""
    target = _platform(platform, get_settings())

    if target == "jira":
        key_param = "issueKey"
        update_data = {
            "summary": title,
            "description": description,
            "assignee": assignee,
            "labels": label,
            "status": status,
        }
    else:
        key_param = "issueId"
        update_data = {
            "title": title,
            "description": description,
            "assigneeId": assignee_id,
            "labels": label,
            "state": status,
        }

    update_data = _compact(update_data)
    if not update_data:
        raise ValidationError("Nothing to update. Pass at least one field option")

    execute_command("update_issue", {"platform": target, key_param: issue_key, "updateData": update_data})
    rprint(f"[green]✓[/green] Updated {issue_key}: {', '.join(sorted(update_data))}")


@app.command("parse-prd")
@_reports_errors
def parse_prd(
    file: Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="Path to PRD file")],
    platform: PlatformOpt = None,
    project: ProjectOpt = None,
) -> None:
    """Parse a PRD file with Claude and create one issue per task."""
    settings = get_settings()
    client = _claude(settings)
    target = _platform(platform, settings)
    project_key = _project_key(project, settings) if target == "jira" else None

    typer.echo(f"Reading PRD file: {file}...")
    prd_content = file.read_text(encoding="utf-8")

    typer.echo("Analyzing PRD with Claude...")
    tasks = plan_tasks(client, prd_content)

    typer.echo(f"Creating {len(tasks)} issues...")
    for task in tasks:
        typer.echo(f"Creating issue: {task.summary}")
        created = execute_command("create_issue", _task_params(target, task, project_key))
        rprint(f"[green]✓[/green] Created issue: {_issue_ref(target, created)}")

    typer.echo("Done!")


@app.command("expand")
@_reports_errors
def expand(
    issue_key: Annotated[str, typer.Argument(help="JIRA issue key (e.g. PROJ-123)")],
    number: Annotated[int, typer.Option("--number", "-n", min=1, help="Number of subtasks to generate")] = 5,
) -> None:
    """Generate JIRA sub-tasks for an issue with Claude."""
    client = _claude(get_settings())

    typer.echo(f"Fetching issue: {issue_key}...")
    found = execute_command(
        "search_issues",
        {"platform": "jira", "jql": f"key={issue_key}", "options": {"fields": ["summary", "description"]}},
    )
    issues = (found or {}).get("issues") or []
    if not issues:
        raise ValidationError(f"Issue {issue_key} not found")
    fields = issues[0].get("fields") or {}

    typer.echo("Generating subtasks with Claude...")
    subtasks = plan_subtasks(client, fields.get("summary", ""), fields.get("description"), number)

    typer.echo(f"Creating {len(subtasks)} subtasks for {issue_key}...")
    project_key = issue_key.rsplit("-", 1)[0]
    for subtask in subtasks:
        typer.echo(f"Creating subtask: {subtask.summary}")
        created = execute_command(
            "create_issue",
            {
                "platform": "jira",
                "projectKey": project_key,
                "summary": subtask.summary,
                "description": subtask.description,
                "issueType": "Sub-task",
                "parent": {"key": issue_key},
            },
        )
        rprint(f"[green]✓[/green] Created subtask: {created.get('key', '?')}")

    typer.echo("Done!")


@app.command("config-check")
@_reports_errors
def config_check(platform: PlatformOpt = None) -> None:
    """Ask the bridge whether the platform's required settings are present."""
    target = _platform(platform, get_settings())
    result = execute_command("has_required_config", {"platform": target})
    if not result.get("hasRequiredConfig"):
        rprint(f"[red]✗[/red] {target} configuration is incomplete")
        raise typer.Exit(1)
    rprint(f"[green]✓[/green] {target} configuration is complete")


@app.command("config-show")
def config_show() -> None:
    """Show resolved configuration (masks credentials)."""
    settings = get_settings()

    def mask(val: str | None) -> str:
        if not val:
            return "[dim](not set)[/dim]"
        if len(val) <= 5:
            return "***"
        return f"...{val[-5:]}"

    def plain(val: str | None) -> str:
        return val or "[dim](not set)[/dim]"

    table = Table(title="trackbridge configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("default_platform", settings.default_platform)
    table.add_row("jira_url", plain(settings.jira_url))
    table.add_row("jira_email", plain(settings.jira_email))
    table.add_row("jira_token", mask(secret_value(settings.jira_token)))
    table.add_row("jira_project", plain(settings.jira_project))
    table.add_row("gitlab_url", plain(settings.gitlab_url))
    table.add_row("gitlab_token", mask(secret_value(settings.gitlab_token)))
    table.add_row("gitlab_project_id", plain(settings.gitlab_project_id))
    table.add_row("anthropic_api_key", mask(secret_value(settings.anthropic_api_key)))
    table.add_row("anthropic_model", settings.anthropic_model)
    table.add_row("log_level", settings.log_level)
    table.add_row("environment", settings.environment)

    rprint(table)


@app.command("set-default")
def set_default(
    platform: Annotated[str, typer.Argument(help="Platform to use when a request names none")],
) -> None:
    """Set default_platform in ~/.config/trackbridge/config.toml."""
    platform = platform.lower()
    if platform not in SUPPORTED_PLATFORMS:
        rprint(f"[red]Unknown platform '{platform}'. Valid: {', '.join(SUPPORTED_PLATFORMS)}[/red]")
        raise typer.Exit(1)

    # round-trip keeps any comments already in the file
    doc = tomlkit.load(CONFIG_PATH.open()) if CONFIG_PATH.exists() else tomlkit.document()
    doc["default_platform"] = platform
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_PATH.write_text(tomlkit.dumps(doc))
    rprint(f'[green]✓[/green] Default platform set to "{platform}" in {CONFIG_PATH}')


@app.command("serve")
def serve() -> None:
    """Run the bridge in this process: requests on stdin, responses on stdout."""
    server.main()
