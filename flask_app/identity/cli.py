"""
CLI commands for operating the identity store.

Registered on the Flask CLI as ``flask identity ...``.
"""

from __future__ import annotations

import json

import click
from flask.cli import AppGroup

from flask_app.models import db

from .normalize import IdentifyRequest, normalize_email, normalize_phone
from .service import IdentityService

identity_cli = AppGroup("identity", help="Identity reconciliation commands.")


@identity_cli.command("init-db")
def init_db_command():
    """Create the contacts table if it does not exist."""
    db.create_all()
    click.echo("Contact tables are ready.")


@identity_cli.command("identify")
@click.option("--email", "email", default=None, help="Email address to resolve.")
@click.option("--phone", "phone_number", default=None, help="Phone number to resolve.")
def identify_command(email, phone_number):
    """Resolve an email/phone pair and print the consolidated identity."""
    request = IdentifyRequest(email=normalize_email(email), phone_number=normalize_phone(phone_number))
    if request.is_empty:
        raise click.UsageError("Provide --email, --phone, or both.")

    result = IdentityService().identify(request)
    if not result.ok:
        raise click.ClickException(f"Identity resolution failed ({result.failure.value}): {result.message}")
    click.echo(json.dumps(result.view.to_response(), indent=2))


@identity_cli.command("cluster")
@click.argument("contact_id", type=int)
def cluster_command(contact_id):
    """Show the identity cluster that contains CONTACT_ID."""
    view = IdentityService().cluster_for(contact_id)
    if view is None:
        raise click.ClickException(f"Contact {contact_id} not found.")
    click.echo(json.dumps(view.to_response(), indent=2))
