from __future__ import annotations

import asyncio

import typer

from .exceptions import LeadNotFoundError
from .logging_config import configure_logging
from .models import create_all
from .models.db import SessionLocal
from .services.email_service import EmailNotifier
from .services.lead_service import LeadService
from .services.store import SqlEngagementStore
from .services.tasks import TaskDispatcher


app = typer.Typer(help="edureach: lead scoring maintenance jobs.")


def _service(db) -> LeadService:
    return LeadService(SqlEngagementStore(db), EmailNotifier(), TaskDispatcher())


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v")) -> None:
    configure_logging("DEBUG" if verbose else None)
    create_all()


@app.command()
def rescore() -> None:
    """Recompute score and status for every lead."""
    db = SessionLocal()
    try:
        result = _service(db).rescore_all()
    finally:
        db.close()
    typer.echo(f"Rescored {result['updated']}/{result['total']} leads")
    if result["updated"] < result["total"]:
        raise typer.Exit(code=1)


@app.command()
def score(lead_id: str = typer.Argument(..., help="Lead UUID")) -> None:
    """Recompute score and status for one lead."""
    db = SessionLocal()
    try:
        value = _service(db).recompute_score(lead_id)
    except LeadNotFoundError as e:
        typer.echo(e.message, err=True)
        raise typer.Exit(code=1)
    finally:
        db.close()
    typer.echo(f"Lead {lead_id}: score {value}")


@app.command("check-leads")
def check_leads(limit: int = typer.Option(5, "--limit", min=1)) -> None:
    """Print the latest leads."""
    db = SessionLocal()
    try:
        leads, total = SqlEngagementStore(db).list_leads(limit=limit)
    finally:
        db.close()

    typer.echo(f"Found {total} leads, showing {len(leads)}:")
    for index, lead in enumerate(leads, start=1):
        typer.echo("----------------------------------------")
        typer.echo(f"Lead #{index}")
        typer.echo(f"ID: {lead.id}")
        typer.echo(f"Name: {lead.name}")
        typer.echo(f"Email: {lead.email}")
        typer.echo(f"Phone: {lead.phone or 'N/A'}")
        typer.echo(f"Role: {lead.role or 'N/A'}")
        typer.echo(f"Status: {lead.status.value} (score {lead.ai_score if lead.ai_score is not None else 'N/A'})")
        typer.echo(f"Created: {lead.created_at}")


@app.command("test-email")
def test_email(to: str = typer.Argument(..., help="Recipient address")) -> None:
    """Send a welcome email to check SMTP settings."""
    result = asyncio.run(EmailNotifier().notify_welcome(to, "Test User"))
    if not result.success:
        typer.echo(f"Email failed: {result.error}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Email sent to {to}")


if __name__ == "__main__":
    app()
