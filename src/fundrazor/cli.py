from __future__ import annotations

import json
import shutil
from dataclasses import asdict
from pathlib import Path
from typing import Annotated, Any

import typer

from fundrazor import __version__
from fundrazor.config import (
    WorkspaceConfig,
    WorkspaceError,
    ensure_workspaces_dir,
    load_workspace,
    set_current_workspace,
    workspace_config_path,
    write_workspace_config,
)
from fundrazor.domain import rules
from fundrazor.domain.rules import NotFoundError, ValidationError
from fundrazor.domain.stages import (
    Currency,
    GiftType,
    GrantStage,
    OpportunityStage,
    TaskPriority,
    UserRole,
)
from fundrazor.logs import configure_logging
from fundrazor.services import (
    analytics,
    dashboards,
    exports,
    gifts,
    grants,
    interactions,
    meeting_notes,
    opportunities,
    persons,
    recommendations,
    scoring,
    tasks,
    users,
)
from fundrazor.services.events import EventLogger
from fundrazor.services.utils import today_iso, utc_now
from fundrazor.store.migrations import SCHEMA_PATH
from fundrazor.store.sqlite import SqliteStore

app = typer.Typer(help="FundRazor donor CRM")
workspace_app = typer.Typer(help="Workspace management")
schema_app = typer.Typer(help="Schema operations")
user_app = typer.Typer(help="Staff users")
person_app = typer.Typer(help="Donors and prospects")
gift_app = typer.Typer(help="Gifts")
interaction_app = typer.Typer(help="Donor interactions")
opportunity_app = typer.Typer(help="Major gift opportunities")
grant_app = typer.Typer(help="Grant pipeline")
task_app = typer.Typer(help="Tasks")
actions_app = typer.Typer(help="Next best actions")
scores_app = typer.Typer(help="Donor scores")
donors_app = typer.Typer(help="Donor segments")
dashboard_app = typer.Typer(help="Dashboards")
notes_app = typer.Typer(help="Meeting notes")
export_app = typer.Typer(help="Exports")

app.add_typer(workspace_app, name="workspace")
app.add_typer(schema_app, name="schema")
app.add_typer(user_app, name="user")
app.add_typer(person_app, name="person")
app.add_typer(gift_app, name="gift")
app.add_typer(interaction_app, name="interaction")
app.add_typer(opportunity_app, name="opportunity")
app.add_typer(grant_app, name="grant")
app.add_typer(task_app, name="task")
app.add_typer(actions_app, name="actions")
app.add_typer(scores_app, name="scores")
app.add_typer(donors_app, name="donors")
app.add_typer(dashboard_app, name="dashboard")
app.add_typer(notes_app, name="notes")
app.add_typer(export_app, name="export")


def version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=version_callback, is_eager=True, help="Show version and exit."
    ),
    events: bool = typer.Option(
        True, "--events/--no-events", help="Write change events to the workspace log."
    ),
):
    ctx.obj = {"events": events}


@app.command("init")
def init() -> None:
    """Initialize directories for workspaces and outputs."""
    ensure_workspaces_dir()
    Path("data").mkdir(exist_ok=True)
    Path("exports").mkdir(exist_ok=True)
    typer.echo("Initialized fundrazor directories.")


@workspace_app.command("add")
def workspace_add(
    name: str = typer.Argument(...),
    owner: str | None = typer.Option(
        None, "--owner", help="Default owner user id for generated tasks."
    ),
    use: bool = typer.Option(True, "--use/--no-use", help="Set as current workspace."),
    force: bool = typer.Option(
        False, "--force", help="Overwrite existing workspace config if it exists."
    ),
) -> None:
    config_path = workspace_config_path(name)
    if config_path.exists() and not force:
        raise typer.BadParameter(
            f"Workspace already exists: {config_path}. Use --force to overwrite."
        )
    config_path = write_workspace_config(name, owner)
    if use:
        set_current_workspace(name)
    typer.echo(f"Workspace created: {config_path}")


@workspace_app.command("use")
def workspace_use(name: str = typer.Argument(...)) -> None:
    if not workspace_config_path(name).exists():
        raise typer.BadParameter(f"Workspace config not found: {workspace_config_path(name)}")
    set_current_workspace(name)
    typer.echo(f"Active workspace: {name}")


@schema_app.command("apply")
def schema_apply() -> None:
    ws = _load_workspace()
    store = SqliteStore(ws.store.sqlite_path)
    store.apply_schema(SCHEMA_PATH)
    typer.echo("Applied schema to local SQLite.")


@user_app.command("add")
def user_add(
    email: str = typer.Option(..., "--email"),
    first: str | None = typer.Option(None, "--first"),
    last: str | None = typer.Option(None, "--last"),
    role: str = typer.Option(
        UserRole.MGO.value, "--role", help="ADMIN, CEO, DEV_DIRECTOR, MGO or DATA_OPS"
    ),
) -> None:
    store = _store(_load_workspace())
    try:
        user = users.add_user(store, email=email, first_name=first, last_name=last, role=role)
    except ValidationError as exc:
        _exit_with_error(str(exc))
    typer.echo(f"Created user: {user.user_id}")


@user_app.command("list")
def user_list(role: str | None = typer.Option(None, "--role")) -> None:
    store = _store(_load_workspace())
    try:
        rows = users.list_users(store, role=role)
    except ValidationError as exc:
        _exit_with_error(str(exc))
    for user in rows:
        typer.echo(f"{user.user_id} | {user.full_name} | {user.email} | {user.role}")


@person_app.command("add")
def person_add(
    ctx: typer.Context,
    first: str = typer.Argument(...),
    last: str = typer.Argument(...),
    email: str | None = typer.Option(None, "--email"),
    phone: str | None = typer.Option(None, "--phone"),
    org: str | None = typer.Option(None, "--org"),
    preferred: str | None = typer.Option(None, "--preferred"),
    wealth_band: str | None = typer.Option(None, "--wealth-band"),
) -> None:
    ws = _load_workspace()
    store = _store(ws)
    try:
        person = persons.add_person(
            store,
            first_name=first,
            last_name=last,
            email=email,
            phone=phone,
            organization_name=org,
            preferred_name=preferred,
            wealth_band=wealth_band,
            events=_event_logger(ws, ctx),
        )
    except ValidationError as exc:
        _exit_with_error(str(exc))
    typer.echo(f"Created person: {person.person_id}")


@person_app.command("list")
def person_list(search: str | None = typer.Option(None, "--search")) -> None:
    store = _store(_load_workspace())
    for person in persons.list_persons(store, search=search):
        typer.echo(
            f"{person.person_id} | {person.full_name} | {person.total_lifetime_giving} | "
            f"E{person.engagement_score} C{person.capacity_score} A{person.affinity_score}"
        )


@person_app.command("show")
def person_show(person_id: str = typer.Argument(...)) -> None:
    store = _store(_load_workspace())
    try:
        person = persons.get_person(store, person_id)
    except NotFoundError as exc:
        _exit_with_error(str(exc))
    typer.echo(_to_json(person))


@person_app.command("energy")
def person_energy(
    ctx: typer.Context,
    person_id: str = typer.Argument(...),
    score: int = typer.Argument(..., help="0-100"),
) -> None:
    _set_relationship_score(ctx, person_id, {"relationship_energy": score})


@person_app.command("structure")
def person_structure(
    ctx: typer.Context,
    person_id: str = typer.Argument(...),
    score: int = typer.Argument(..., help="0-100"),
) -> None:
    _set_relationship_score(ctx, person_id, {"relationship_structure": score})


@gift_app.command("add")
def gift_add(
    ctx: typer.Context,
    person_id: str = typer.Argument(...),
    amount: str = typer.Argument(...),
    received: str | None = typer.Option(None, "--date", help="ISO date; defaults to now."),
    gift_type: str = typer.Option(GiftType.ONE_TIME.value, "--type"),
    currency: str = typer.Option(Currency.USD.value, "--currency"),
    designation: str | None = typer.Option(None, "--designation"),
    method: str | None = typer.Option(None, "--method"),
) -> None:
    ws = _load_workspace()
    store = _store(ws)
    try:
        received_at = rules.parse_datetime(received, "date") or utc_now()
        gift = gifts.add_gift(
            store,
            person_id=person_id,
            amount=amount,
            received_at=received_at,
            gift_type=gift_type,
            currency=currency,
            designation=designation,
            payment_method=method,
            events=_event_logger(ws, ctx),
        )
    except (ValidationError, NotFoundError) as exc:
        _exit_with_error(str(exc))
    typer.echo(f"Recorded gift: {gift.gift_id}")


@gift_app.command("list")
def gift_list(person_id: str | None = typer.Option(None, "--person")) -> None:
    store = _store(_load_workspace())
    for gift in gifts.list_gifts(store, person_id=person_id):
        typer.echo(
            f"{gift.gift_id} | {gift.person_id} | {gift.amount} {gift.currency} | "
            f"{gift.received_at.date().isoformat()} | {gift.gift_type}"
        )


@gift_app.command("update")
def gift_update(
    ctx: typer.Context,
    gift_id: str = typer.Argument(...),
    amount: str | None = typer.Option(None, "--amount"),
    received: str | None = typer.Option(None, "--date"),
    gift_type: str | None = typer.Option(None, "--type"),
    designation: str | None = typer.Option(None, "--designation"),
    person_id: str | None = typer.Option(None, "--person", help="Move the gift to this donor."),
) -> None:
    ws = _load_workspace()
    store = _store(ws)
    try:
        fields = _present(
            amount=amount,
            received_at=rules.parse_datetime(received, "date"),
            gift_type=gift_type,
            designation=designation,
            person_id=person_id,
        )
        if not fields:
            raise ValidationError("Nothing to update.")
        gift = gifts.update_gift(store, gift_id, fields, events=_event_logger(ws, ctx))
    except (ValidationError, NotFoundError) as exc:
        _exit_with_error(str(exc))
    typer.echo(f"Updated gift: {gift.gift_id}")


@gift_app.command("delete")
def gift_delete(ctx: typer.Context, gift_id: str = typer.Argument(...)) -> None:
    ws = _load_workspace()
    store = _store(ws)
    try:
        gifts.delete_gift(store, gift_id, events=_event_logger(ws, ctx))
    except NotFoundError as exc:
        _exit_with_error(str(exc))
    typer.echo(f"Deleted gift: {gift_id}")


@interaction_app.command("add")
def interaction_add(
    ctx: typer.Context,
    person_id: str = typer.Argument(...),
    interaction_type: str = typer.Argument(..., help="email_open, meeting, event, ..."),
    occurred: str | None = typer.Option(None, "--at", help="ISO date/time; defaults to now."),
    owner: str | None = typer.Option(None, "--owner"),
    notes: str | None = typer.Option(None, "--notes"),
    source: str | None = typer.Option(None, "--source"),
) -> None:
    ws = _load_workspace()
    store = _store(ws)
    try:
        occurred_at = rules.parse_datetime(occurred, "at") or utc_now()
        interaction = interactions.add_interaction(
            store,
            person_id=person_id,
            interaction_type=interaction_type,
            occurred_at=occurred_at,
            owner_id=owner,
            notes=notes,
            source=source,
            events=_event_logger(ws, ctx),
        )
    except (ValidationError, NotFoundError) as exc:
        _exit_with_error(str(exc))
    typer.echo(f"Logged interaction: {interaction.interaction_id}")


@interaction_app.command("list")
def interaction_list(person_id: str | None = typer.Option(None, "--person")) -> None:
    store = _store(_load_workspace())
    for item in interactions.list_interactions(store, person_id=person_id):
        typer.echo(
            f"{item.interaction_id} | {item.person_id} | {item.type} | "
            f"{item.occurred_at.isoformat()} | {item.notes or ''}"
        )


@interaction_app.command("delete")
def interaction_delete(ctx: typer.Context, interaction_id: str = typer.Argument(...)) -> None:
    ws = _load_workspace()
    store = _store(ws)
    try:
        interactions.delete_interaction(store, interaction_id, events=_event_logger(ws, ctx))
    except NotFoundError as exc:
        _exit_with_error(str(exc))
    typer.echo(f"Deleted interaction: {interaction_id}")


@opportunity_app.command("add")
def opportunity_add(
    ctx: typer.Context,
    person_id: str = typer.Argument(...),
    owner: str | None = typer.Option(None, "--owner"),
    stage: str = typer.Option(OpportunityStage.PROSPECT.value, "--stage"),
    ask: str | None = typer.Option(None, "--ask"),
    probability: int | None = typer.Option(None, "--probability"),
    close: str | None = typer.Option(None, "--close"),
    days_in_stage: int = typer.Option(0, "--days-in-stage"),
    notes: str | None = typer.Option(None, "--notes"),
) -> None:
    ws = _load_workspace()
    store = _store(ws)
    try:
        opportunity = opportunities.add_opportunity(
            store,
            person_id=person_id,
            owner_id=owner,
            stage=stage,
            ask_amount=ask,
            probability=probability,
            close_date=rules.parse_datetime(close, "close"),
            days_in_stage=days_in_stage,
            notes=notes,
            events=_event_logger(ws, ctx),
        )
    except (ValidationError, NotFoundError) as exc:
        _exit_with_error(str(exc))
    typer.echo(f"Created opportunity: {opportunity.opportunity_id}")


@opportunity_app.command("list")
def opportunity_list(
    owner: str | None = typer.Option(None, "--owner"),
    person_id: str | None = typer.Option(None, "--person"),
) -> None:
    store = _store(_load_workspace())
    for opp in opportunities.list_opportunities(store, owner_id=owner, person_id=person_id):
        typer.echo(
            f"{opp.opportunity_id} | {opp.person_id} | {opp.stage} | {opp.ask_amount} | "
            f"{opp.probability} | {opp.days_in_stage}d"
        )


@opportunity_app.command("update")
def opportunity_update(
    ctx: typer.Context,
    opportunity_id: str = typer.Argument(...),
    stage: str | None = typer.Option(None, "--stage"),
    ask: str | None = typer.Option(None, "--ask"),
    probability: int | None = typer.Option(None, "--probability"),
    close: str | None = typer.Option(None, "--close"),
    days_in_stage: int | None = typer.Option(None, "--days-in-stage"),
    owner: str | None = typer.Option(None, "--owner"),
    notes: str | None = typer.Option(None, "--notes"),
) -> None:
    ws = _load_workspace()
    store = _store(ws)
    try:
        fields = _present(
            stage=stage,
            ask_amount=ask,
            probability=probability,
            close_date=rules.parse_datetime(close, "close"),
            days_in_stage=days_in_stage,
            owner_id=owner,
            notes=notes,
        )
        if not fields:
            raise ValidationError("Nothing to update.")
        opportunity = opportunities.update_opportunity(
            store, opportunity_id, fields, events=_event_logger(ws, ctx)
        )
    except (ValidationError, NotFoundError) as exc:
        _exit_with_error(str(exc))
    typer.echo(f"Updated opportunity: {opportunity.opportunity_id} ({opportunity.stage})")


@grant_app.command("add")
def grant_add(
    ctx: typer.Context,
    funder: str = typer.Argument(...),
    stage: str = typer.Option(GrantStage.RESEARCH.value, "--stage"),
    purpose: str | None = typer.Option(None, "--purpose"),
    ask: str | None = typer.Option(None, "--ask"),
    awarded: str | None = typer.Option(None, "--awarded"),
    owner: str | None = typer.Option(None, "--owner"),
    contact: str | None = typer.Option(None, "--contact", help="Funder contact person id."),
    loi_due: str | None = typer.Option(None, "--loi-due"),
    application_due: str | None = typer.Option(None, "--application-due"),
    decision: str | None = typer.Option(None, "--decision"),
    report_due: str | None = typer.Option(None, "--report-due"),
    notes: str | None = typer.Option(None, "--notes"),
) -> None:
    ws = _load_workspace()
    store = _store(ws)
    try:
        grant = grants.add_grant(
            store,
            funder_name=funder,
            stage=stage,
            purpose=purpose,
            ask_amount=ask,
            awarded_amount=awarded,
            owner_id=owner,
            funder_contact_id=contact,
            loi_due_date=rules.parse_datetime(loi_due, "loi due"),
            application_due_date=rules.parse_datetime(application_due, "application due"),
            decision_date=rules.parse_datetime(decision, "decision"),
            report_due_date=rules.parse_datetime(report_due, "report due"),
            notes=notes,
            events=_event_logger(ws, ctx),
        )
    except (ValidationError, NotFoundError) as exc:
        _exit_with_error(str(exc))
    typer.echo(f"Created grant: {grant.grant_id}")


@grant_app.command("list")
def grant_list(
    owner: str | None = typer.Option(None, "--owner"),
    stage: str | None = typer.Option(None, "--stage"),
) -> None:
    store = _store(_load_workspace())
    try:
        rows = grants.list_grants(store, owner_id=owner, stage=stage)
    except ValidationError as exc:
        _exit_with_error(str(exc))
    for grant in rows:
        due = grant.application_due_date.date().isoformat() if grant.application_due_date else ""
        typer.echo(
            f"{grant.grant_id} | {grant.funder_name} | {grant.stage} | {grant.ask_amount} | {due}"
        )


@grant_app.command("update")
def grant_update(
    ctx: typer.Context,
    grant_id: str = typer.Argument(...),
    stage: str | None = typer.Option(None, "--stage"),
    ask: str | None = typer.Option(None, "--ask"),
    awarded: str | None = typer.Option(None, "--awarded"),
    loi_due: str | None = typer.Option(None, "--loi-due"),
    application_due: str | None = typer.Option(None, "--application-due"),
    decision: str | None = typer.Option(None, "--decision"),
    report_due: str | None = typer.Option(None, "--report-due"),
    notes: str | None = typer.Option(None, "--notes"),
) -> None:
    ws = _load_workspace()
    store = _store(ws)
    try:
        fields = _present(
            stage=stage,
            ask_amount=ask,
            awarded_amount=awarded,
            loi_due_date=rules.parse_datetime(loi_due, "loi due"),
            application_due_date=rules.parse_datetime(application_due, "application due"),
            decision_date=rules.parse_datetime(decision, "decision"),
            report_due_date=rules.parse_datetime(report_due, "report due"),
            notes=notes,
        )
        if not fields:
            raise ValidationError("Nothing to update.")
        grant = grants.update_grant(store, grant_id, fields, events=_event_logger(ws, ctx))
    except (ValidationError, NotFoundError) as exc:
        _exit_with_error(str(exc))
    typer.echo(f"Updated grant: {grant.grant_id} ({grant.stage})")


@task_app.command("add")
def task_add(
    ctx: typer.Context,
    title: str = typer.Argument(...),
    owner: str | None = typer.Option(None, "--owner", help="Defaults to the workspace owner."),
    person_id: str | None = typer.Option(None, "--person"),
    description: str | None = typer.Option(None, "--description"),
    priority: str = typer.Option(TaskPriority.MEDIUM.value, "--priority"),
    due: str | None = typer.Option(None, "--due"),
) -> None:
    ws = _load_workspace()
    store = _store(ws)
    try:
        owner_id = recommendations.resolve_default_owner(
            store, owner or ws.engine.default_owner_id, ws.engine.owner_role
        )
        if owner_id is None:
            raise ValidationError(
                f"No task owner: pass --owner or add a user with role {ws.engine.owner_role}."
            )
        task = tasks.add_task(
            store,
            owner_id=owner_id,
            title=title,
            person_id=person_id,
            description=description,
            priority=priority,
            due_date=rules.parse_datetime(due, "due"),
            events=_event_logger(ws, ctx),
        )
    except (ValidationError, NotFoundError) as exc:
        _exit_with_error(str(exc))
    typer.echo(f"Created task: {task.task_id}")


@task_app.command("list")
def task_list(
    owner: str | None = typer.Option(None, "--owner"),
    person_id: str | None = typer.Option(None, "--person"),
    show_all: bool = typer.Option(False, "--all", help="Include completed tasks."),
    limit: int | None = typer.Option(None, "--limit"),
) -> None:
    store = _store(_load_workspace())
    rows = tasks.list_tasks(
        store,
        owner_id=owner,
        person_id=person_id,
        completed=None if show_all else False,
        limit=limit,
    )
    if not rows:
        typer.echo("No open tasks.")
        return
    for task in rows:
        due = task.due_date.date().isoformat() if task.due_date else ""
        status = "done" if task.completed else "open"
        typer.echo(f"{task.task_id} | {task.priority} | {due} | {status} | {task.title}")


@task_app.command("complete")
def task_complete(ctx: typer.Context, task_id: str = typer.Argument(...)) -> None:
    ws = _load_workspace()
    store = _store(ws)
    try:
        task = tasks.complete_task(store, task_id, events=_event_logger(ws, ctx))
    except NotFoundError as exc:
        _exit_with_error(str(exc))
    typer.echo(f"Completed task: {task.task_id}")


@actions_app.command("generate")
def actions_generate(
    ctx: typer.Context,
    owner: str | None = typer.Option(None, "--owner", help="Default owner for new tasks."),
    role: str | None = typer.Option(None, "--role", help="Owner role when no owner is set."),
) -> None:
    """Run the next-best-action rules over every donor."""
    ws = _load_workspace()
    store = _store(ws)
    try:
        created = recommendations.generate_next_best_actions(
            store,
            owner_id=owner or ws.engine.default_owner_id,
            owner_role=role or ws.engine.owner_role,
            events=_event_logger(ws, ctx),
        )
    except NotFoundError as exc:
        _exit_with_error(str(exc))
    for task in created:
        typer.echo(f"{task.task_id} | {task.priority} | {task.title}")
    typer.echo(f"Created {len(created)} task(s).")


@scores_app.command("recompute")
def scores_recompute() -> None:
    store = _store(_load_workspace())
    count = scoring.recompute_all(store)
    typer.echo(f"Recomputed scores for {count} donor(s).")


@donors_app.command("lybunt")
def donors_lybunt(
    json_output: bool = typer.Option(False, "--json", help="Emit JSON output."),
) -> None:
    """Donors who gave Last Year But Unfortunately Not This year."""
    _echo_lapsed(analytics.lybunt_donors(_store(_load_workspace())), json_output)


@donors_app.command("sybunt")
def donors_sybunt(
    json_output: bool = typer.Option(False, "--json", help="Emit JSON output."),
) -> None:
    """Donors who gave Some Year But Unfortunately Not This year."""
    _echo_lapsed(analytics.sybunt_donors(_store(_load_workspace())), json_output)


@dashboard_app.command("home")
def dashboard_home() -> None:
    ws = _load_workspace()
    result = dashboards.home_dashboard(_store(ws), annual_goal=ws.dashboard.annual_goal)
    typer.echo(_to_json(result))


@notes_app.command("add")
def notes_add(
    ctx: typer.Context,
    transcript: str = typer.Option(..., "--transcript", help="Meeting notes or transcript text."),
    title: str | None = typer.Option(None, "--title"),
    person_id: str | None = typer.Option(None, "--person"),
    purpose: str | None = typer.Option(None, "--purpose"),
    topics: Annotated[list[str] | None, typer.Option("--topic")] = None,
    learnings: Annotated[list[str] | None, typer.Option("--learning")] = None,
    action_items: Annotated[list[str] | None, typer.Option("--action")] = None,
) -> None:
    ws = _load_workspace()
    store = _store(ws)
    try:
        note = meeting_notes.add_meeting_note(
            store,
            transcription=transcript,
            title=title,
            person_id=person_id,
            purpose=purpose,
            topics=topics,
            key_learnings=learnings,
            action_items=action_items,
            events=_event_logger(ws, ctx),
        )
    except (ValidationError, NotFoundError) as exc:
        _exit_with_error(str(exc))
    typer.echo(f"Saved meeting note: {note.note_id}")


@notes_app.command("list")
def notes_list(person_id: str | None = typer.Option(None, "--person")) -> None:
    store = _store(_load_workspace())
    for note in meeting_notes.list_meeting_notes(store, person_id=person_id):
        typer.echo(
            f"{note.note_id} | {note.recorded_at.date().isoformat()} | {note.title} | "
            f"{note.donor_name or ''} | {len(note.action_items)} action(s)"
        )


@export_app.command("excel")
def export_excel(out: str = typer.Option(..., "--out")) -> None:
    store = _store(_load_workspace())
    exports.export_excel(store, Path(out))
    typer.echo(f"Exported Excel to {out}")


@app.command("snapshot")
def snapshot() -> None:
    ws = _load_workspace()
    store = _store(ws)
    snapshot_dir = Path("data") / "snapshots" / today_iso()
    snapshot_dir.mkdir(parents=True, exist_ok=True)
    if ws.store.sqlite_path.exists():
        shutil.copy2(ws.store.sqlite_path, snapshot_dir / "local.sqlite")
    exports.export_csv_tables(store, snapshot_dir)
    typer.echo(f"Snapshot created at {snapshot_dir}")


def _load_workspace() -> WorkspaceConfig:
    try:
        ws = load_workspace()
    except WorkspaceError as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=1) from exc
    configure_logging(ws.logging.level, json_output=ws.logging.json)
    return ws


def _store(ws: WorkspaceConfig) -> SqliteStore:
    return SqliteStore(ws.store.sqlite_path)


def _exit_with_error(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


def _event_logger(ws: WorkspaceConfig, ctx: typer.Context) -> EventLogger:
    enabled = (ctx.obj or {}).get("events", True)
    return EventLogger(path=ws.path / "events.ndjson", workspace=ws.name, enabled=enabled)


def _set_relationship_score(ctx: typer.Context, person_id: str, fields: dict[str, int]) -> None:
    ws = _load_workspace()
    store = _store(ws)
    try:
        person = persons.update_person(store, person_id, fields, events=_event_logger(ws, ctx))
    except (ValidationError, NotFoundError) as exc:
        _exit_with_error(str(exc))
    typer.echo(
        f"{person.full_name}: energy {person.relationship_energy}, "
        f"structure {person.relationship_structure}"
    )


def _present(**fields: Any) -> dict[str, Any]:
    return {key: value for key, value in fields.items() if value is not None}


def _echo_lapsed(donors: list[analytics.LapsedDonor], json_output: bool) -> None:
    if json_output:
        typer.echo(_to_json(donors))
        return
    if not donors:
        typer.echo("No donors found.")
        return
    for donor in donors:
        typer.echo(
            f"{donor.person.person_id} | {donor.person.full_name} | "
            f"last gift {donor.last_gift_year} ({donor.last_gift_amount}) | "
            f"lifetime {donor.lifetime_giving}"
        )


def _to_json(payload: Any) -> str:
    if isinstance(payload, list):
        data = [asdict(item) for item in payload]
    else:
        data = asdict(payload)
    return json.dumps(data, indent=2, default=str)


if __name__ == "__main__":
    app()
