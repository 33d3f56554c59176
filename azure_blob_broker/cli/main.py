"""Main CLI entry point for the Azure Storage Blob broker."""

import json
import sys
from dataclasses import asdict

import click
from tabulate import tabulate

from azure_blob_broker import __version__
from azure_blob_broker.config import Config
from azure_blob_broker.exceptions import BlobBrokerError
from azure_blob_broker.logging_config import setup_logging
from azure_blob_broker.models.factory import ServiceBrokerFactory
from azure_blob_broker.models.service_broker import CloudContext
from azure_blob_broker.services.naming import (
    build_account_parameters, derive_container_name, derive_resource_names
)


def _parse_params(values):
    """Turn repeated ``key=value`` options into a parameters mapping."""
    params = {}
    for item in values:
        if '=' not in item:
            raise click.BadParameter(f"Expected key=value, got '{item}'", param_hint='--param')
        key, value = item.split('=', 1)
        params[key.strip()] = value
    return params


@click.group()
@click.option('--config-file', '-c', type=click.Path(dir_okay=False),
              help='YAML configuration file')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx, config_file, verbose):
    """Azure Storage Blob broker CLI - Inspect and serve the service broker."""

    ctx.ensure_object(dict)

    try:
        ctx.obj['config'] = Config.from_file(config_file) if config_file else Config.from_env()
    except BlobBrokerError as e:
        raise click.ClickException(e.message)

    if verbose:
        ctx.obj['config'].logging.level = 'DEBUG'
        setup_logging(ctx.obj['config'].logging)


@cli.command()
@click.option('--host', help='Address to bind')
@click.option('--port', type=int, help='Port to listen on')
@click.pass_context
def serve(ctx, host, port):
    """Start the Open Service Broker API server."""
    from azure_blob_broker.api.service_broker import run_server, set_orchestrator
    from azure_blob_broker.services.lifecycle import LifecycleOrchestrator

    cfg = ctx.obj['config']
    if host:
        cfg.api.host = host
    if port:
        cfg.api.port = port

    setup_logging(cfg.logging)
    set_orchestrator(LifecycleOrchestrator(
        defaults=cfg.defaults,
        default_cloud=CloudContext(**asdict(cfg.azure))
    ))

    click.echo(f"Starting Azure Storage Blob broker on {cfg.api.host}:{cfg.api.port}")
    click.echo(f"Auth: {'Enabled' if cfg.api.auth_enabled else 'Disabled'}")
    click.echo(f"Azure environment: {cfg.azure.environment}")
    run_server(cfg)


@cli.command()
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
def catalog(output_format):
    """Show the service catalog."""
    catalog_model = ServiceBrokerFactory.create_catalog()

    if output_format == 'json':
        click.echo(json.dumps(catalog_model.model_dump(exclude_none=True), indent=2))
        return

    rows = []
    for service in catalog_model.services:
        for plan in service.plans:
            rows.append([service.name, service.id, plan.name, plan.id, 'Yes' if service.bindable else 'No'])

    headers = ['Service', 'Service ID', 'Plan', 'Plan ID', 'Bindable']
    click.echo(tabulate(rows, headers=headers, tablefmt='grid'))


@cli.command()
@click.argument('instance_id')
@click.option('--environment', '-e', help='Azure cloud environment (defaults to configured one)')
@click.option('--param', '-p', 'params', multiple=True, help='Provision parameter as key=value')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
def names(ctx, instance_id, environment, params, output_format):
    """Show the resource names a provision request would use."""
    cfg = ctx.obj['config']
    parameters = _parse_params(params)
    environment = environment or cfg.azure.environment

    resource_names = derive_resource_names(instance_id, parameters, environment, cfg.defaults)
    account_parameters = build_account_parameters(resource_names, parameters, cfg.defaults)
    container_name = derive_container_name(instance_id, parameters, cfg.defaults)

    if output_format == 'json':
        click.echo(json.dumps({
            **asdict(resource_names),
            'container_name': container_name,
            'account_parameters': account_parameters
        }, indent=2))
        return

    rows = [
        ['Resource group', resource_names.resource_group_name],
        ['Storage account', resource_names.storage_account_name],
        ['Location', resource_names.location],
        ['Account type', resource_names.account_type],
        ['Container', container_name],
        ['Account parameters', json.dumps(account_parameters, sort_keys=True)],
    ]
    click.echo(tabulate(rows, headers=['Resource', 'Value'], tablefmt='grid'))


@cli.command()
def version():
    """Show version information."""
    click.echo("Azure Storage Blob broker")
    click.echo(f"Version: {__version__}")


def main():
    """Main entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user")
        sys.exit(1)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
