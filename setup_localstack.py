"""CLI entry point: provision the example e-commerce resources in LocalStack."""
import os
from typing import Optional

import typer

import config
from config import DEFAULT_LOCALSTACK_ENDPOINT
from logger_config import get_logger, set_log_level
from provisioning.provisioner import Provisioner, wait_for_localstack
from provisioning.resources import default_manifest
from utils.exceptions import ProvisioningError

logger = get_logger(__name__)

app = typer.Typer(add_completion=False)

LOCALSTACK_DASHBOARDS = {
    'Web UI': 'http://localhost:8080',
    'SQS Admin': 'http://localhost:3999',
    'DynamoDB Admin': 'http://localhost:8001',
}


@app.command()
def run(
    endpoint_url: Optional[str] = typer.Option(
        None, "--endpoint-url", help=f"LocalStack endpoint (default {DEFAULT_LOCALSTACK_ENDPOINT})"
    ),
    region: Optional[str] = typer.Option(None, "--region", help="AWS region"),
    seed: bool = typer.Option(True, "--seed/--no-seed", help="Insert the example users"),
    wait: bool = typer.Option(True, "--wait/--no-wait", help="Wait for LocalStack health check"),
    timeout: float = typer.Option(60.0, "--timeout", help="Seconds to wait for LocalStack"),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level"),
):
    """Create the bucket, queue, tables, templates, secrets, rules and parameters."""
    try:
        set_log_level(log_level)
    except ValueError as e:
        typer.echo(f"Invalid --log-level: {e}", err=True)
        raise typer.Exit(code=2)

    # Point every boto3 client at LocalStack; awslocal uses the same dummy keys
    endpoint = (endpoint_url or os.environ.get('LOCALSTACK_ENDPOINT')
                or DEFAULT_LOCALSTACK_ENDPOINT).rstrip('/')
    os.environ['AWS_ENDPOINT_URL'] = endpoint
    os.environ['LOCALSTACK_ENDPOINT'] = endpoint
    if region:
        os.environ['AWS_REGION'] = region
    os.environ.setdefault('AWS_ACCESS_KEY_ID', 'test')
    os.environ.setdefault('AWS_SECRET_ACCESS_KEY', 'test')

    config._config = None
    try:
        settings = config.get_config()
    except ValueError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(code=2)

    if wait:
        try:
            wait_for_localstack(settings.localstack_endpoint, timeout=timeout)
        except ProvisioningError as e:
            typer.echo(str(e), err=True)
            raise typer.Exit(code=1)

    manifest = default_manifest(settings)
    if not seed:
        manifest = manifest.without_seed_data()

    provisioner = Provisioner(
        email_sender=settings.email_sender, event_bus_name=settings.event_bus_name
    )
    report = provisioner.provision(manifest)

    typer.echo(
        f"Resources: {len(report.created)} created, "
        f"{len(report.skipped)} already present, {len(report.failed)} failed"
    )
    for kind, name, error in report.failed:
        typer.echo(f"  FAILED {kind} {name}: {error}", err=True)

    if not report.ok:
        raise typer.Exit(code=1)

    for label, url in LOCALSTACK_DASHBOARDS.items():
        typer.echo(f"{label}: {url}")


if __name__ == "__main__":
    app()
