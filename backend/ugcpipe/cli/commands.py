"""CLI commands for ugcpipe using Typer and Rich.

Commands:
- init-db: Create the database schema
- add-user: Register an account (optionally approved, with a tier and credits)
- add-asset: Register an avatar, product or reference image for a user
- add-credits: Administrative credit top-up
- credits: Show a user's balance
- generate: Run a generation request from a JSON file
- jobs: List a user's jobs in a table
- job: Show one job with its scenes and outputs
"""

import asyncio
import json
import logging
import uuid
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ugcpipe.config import settings
from ugcpipe.db import async_session, init_database
from ugcpipe.db.models import Avatar, Product, ReferenceImage, User
from ugcpipe.errors import GenerationError
from ugcpipe.orchestrator import store
from ugcpipe.orchestrator.pipeline import run_generation
from ugcpipe.services import credits as ledger

app = typer.Typer(name="ugcpipe", help="AI UGC video and photo generation pipeline")
console = Console()

TIERS = ("free", "trial", "starter", "pro", "agency")


@app.command("init-db")
def init_db():
    """Create database tables."""
    asyncio.run(init_database())
    console.print(f"[green]Database ready:[/green] {settings.storage.database_url}")


@app.command("add-user")
def add_user(
    user_id: str = typer.Argument(..., help="External account id"),
    name: str = typer.Option(..., "--name", "-n", help="Display name"),
    email: Optional[str] = typer.Option(None, "--email", "-e"),
    tier: str = typer.Option("free", "--tier", "-t", help=f"One of: {', '.join(TIERS)}"),
    approved: bool = typer.Option(True, "--approved/--pending", help="Approval status"),
    active: bool = typer.Option(False, "--active", help="Mark the subscription active"),
):
    """Register an account. Paid and trial tiers start with their allowance."""
    if tier not in TIERS:
        console.print(f"[red]Error:[/red] Invalid tier: {tier}")
        console.print(f"Allowed: {', '.join(TIERS)}")
        raise typer.Exit(code=1)
    asyncio.run(_add_user_async(user_id, name, email, tier, approved, active))


async def _add_user_async(user_id: str, name: str, email: Optional[str], tier: str, approved: bool, active: bool):
    await init_database()
    allowance = settings.credits.tier_allowance.get(tier, 0)
    async with async_session() as session:
        if await session.get(User, user_id) is not None:
            console.print(f"[red]Error:[/red] User {user_id} already exists")
            raise typer.Exit(code=1)
        session.add(
            User(
                id=user_id,
                name=name,
                email=email,
                status="APPROVED" if approved else "PENDING",
                subscription_tier=tier,
                subscription_status="active" if active else "inactive",
                credits_remaining=allowance,
                credits_total=allowance,
                daily_video_quota=settings.quota.daily_video_quota,
                daily_image_quota=settings.quota.daily_image_quota,
            )
        )
        await session.commit()
    console.print(f"[green]Created user[/green] {user_id} ({tier}, {allowance} credits)")


@app.command("add-asset")
def add_asset(
    user_id: str = typer.Argument(..., help="Owning user id"),
    kind: str = typer.Argument(..., help="avatar | product | reference"),
    name: str = typer.Option(..., "--name", "-n"),
    url: str = typer.Option(..., "--url", "-u", help="Image URL"),
    description: Optional[str] = typer.Option(None, "--description", "-d"),
):
    """Register an avatar, product or reference image."""
    models = {"avatar": Avatar, "product": Product, "reference": ReferenceImage}
    if kind not in models:
        console.print(f"[red]Error:[/red] Invalid asset kind: {kind}")
        raise typer.Exit(code=1)
    asyncio.run(_add_asset_async(user_id, models[kind], name, url, description))


async def _add_asset_async(user_id: str, model, name: str, url: str, description: Optional[str]):
    await init_database()
    url_field = "reference_image_url" if model is Avatar else "image_url"
    async with async_session() as session:
        if await session.get(User, user_id) is None:
            console.print(f"[red]Error:[/red] User {user_id} not found")
            raise typer.Exit(code=1)
        item = model(user_id=user_id, name=name, description=description, **{url_field: url})
        session.add(item)
        await session.commit()
        console.print(f"[green]Created {model.__tablename__[:-1]}[/green] {item.id}")


@app.command("add-credits")
def add_credits(
    user_id: str = typer.Argument(..., help="User id"),
    amount: int = typer.Argument(..., help="Credits to add"),
):
    """Top up a user's credit balance."""
    asyncio.run(_add_credits_async(user_id, amount))


async def _add_credits_async(user_id: str, amount: int):
    await init_database()
    async with async_session() as session:
        try:
            balance = await ledger.add(session, user_id, amount)
        except GenerationError as e:
            console.print(f"[red]Error:[/red] {e.message}")
            raise typer.Exit(code=1)
    console.print(f"[green]Added {amount} credits[/green] to {user_id}; balance {balance}")


@app.command()
def credits(user_id: str = typer.Argument(..., help="User id")):
    """Show a user's credit balance."""
    asyncio.run(_credits_async(user_id))


async def _credits_async(user_id: str):
    await init_database()
    async with async_session() as session:
        try:
            info = await ledger.get_credit_info(session, user_id)
        except GenerationError as e:
            console.print(f"[red]Error:[/red] {e.message}")
            raise typer.Exit(code=1)

    console.print(Panel(
        f"Tier: {info.subscription_tier} ({info.subscription_status})\n"
        f"Credits: {info.credits_remaining} / {info.credits_total} "
        f"({info.percentage_remaining}%)",
        title=f"Credits for {user_id}",
    ))


@app.command()
def generate(
    user_id: str = typer.Argument(..., help="Requesting user id"),
    request_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON request body"),
):
    """Run a generation request and print the result."""
    try:
        payload = json.loads(request_file.read_text())
    except json.JSONDecodeError as e:
        console.print(f"[red]Error:[/red] Invalid JSON: {e}")
        raise typer.Exit(code=1)
    asyncio.run(_generate_async(user_id, payload))


async def _generate_async(user_id: str, payload: dict):
    await init_database()
    async with async_session() as session:
        result = await run_generation(
            session,
            user_id,
            payload,
            progress_callback=lambda msg: console.print(f"[dim]{msg}[/dim]"),
        )

    body = result.model_dump(mode="json", by_alias=True, exclude_none=True)
    concat_script = body.pop("concatScript", None)
    colour = "green" if result.success else "red"
    console.print(Panel(json.dumps(body, indent=2), title=f"[{colour}]Result[/{colour}]"))
    if concat_script:
        console.print(Panel(concat_script, title="concat.txt"))
    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def jobs(
    user_id: str = typer.Argument(..., help="User id"),
    limit: int = typer.Option(20, "--limit", "-l"),
):
    """List a user's generation jobs."""
    asyncio.run(_jobs_async(user_id, limit))


async def _jobs_async(user_id: str, limit: int):
    await init_database()
    async with async_session() as session:
        summaries = await store.list_jobs(session, user_id, limit)

    if not summaries:
        console.print("[yellow]No jobs found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold blue")
    table.add_column("ID", style="dim")
    table.add_column("Mode")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Created")

    for job in summaries:
        status_color = _get_status_color(job.status)
        table.add_row(
            str(job.id)[:8] + "...",
            job.mode,
            job.title or "-",
            f"[{status_color}]{job.status}[/{status_color}]",
            job.created_at.strftime("%Y-%m-%d %H:%M") if job.created_at else "-",
        )
    console.print(table)


@app.command()
def job(
    user_id: str = typer.Argument(..., help="Owning user id"),
    job_id: str = typer.Argument(..., help="Job UUID"),
):
    """Show one job with its scenes and outputs."""
    asyncio.run(_job_async(user_id, job_id))


async def _job_async(user_id: str, job_id_str: str):
    try:
        job_id = uuid.UUID(job_id_str)
    except ValueError:
        console.print(f"[red]Error:[/red] Invalid job ID: {job_id_str}")
        raise typer.Exit(code=1)

    await init_database()
    async with async_session() as session:
        try:
            detail = await store.get_job(session, user_id, job_id)
        except GenerationError as e:
            console.print(f"[red]Error:[/red] {e.message}")
            raise typer.Exit(code=1)

    status_color = _get_status_color(detail.status)
    console.print(Panel(
        f"Mode: {detail.mode}\n"
        f"Status: [{status_color}]{detail.status}[/{status_color}]\n"
        f"Provider tier: {detail.provider_tier or '-'}\n"
        f"Error: {detail.error_message or '-'}",
        title=detail.title or str(detail.id),
    ))

    urls = {o.scene_id: o.url for o in detail.outputs}
    table = Table(show_header=True, header_style="bold blue")
    table.add_column("#")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Output / Error")
    for scene in detail.scenes:
        color = _get_status_color(scene.status)
        table.add_row(
            str(scene.order_index),
            scene.scene_type or "-",
            f"[{color}]{scene.status}[/{color}]",
            urls.get(scene.id) or scene.error_message or "-",
        )
    console.print(table)


def _get_status_color(status: str) -> str:
    """Get Rich color for a job or scene status."""
    return {
        "pending": "yellow",
        "processing": "cyan",
        "completed": "green",
        "failed": "red",
    }.get(status, "white")


def main():
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    app()
