"""Main CLI entrypoint for caprover_api."""

import json
import logging
import sys
from typing import Any, Dict, Tuple

import click

from ..client import CaproverClient
from ..config import ClientConfig
from ..errors import CaproverError
from ..manifest import ManifestRepository, variable_token
from ..orchestrator import BundleOrchestrator, executor_from_config, waiter_for


@click.group()
@click.option('--url', envvar='CAPROVER_URL', help='Dashboard URL (or CAPROVER_URL)')
@click.option('--password', envvar='CAPROVER_PASSWORD', help='Dashboard password (or CAPROVER_PASSWORD)')
@click.option('--json', 'output_json', is_flag=True, help='Output machine-readable JSON')
@click.option('--verbose', is_flag=True, help='Log polls and retries')
@click.pass_context
def main(ctx, url, password, output_json, verbose):
    """CapRover client and one-click bundle deployer."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    ctx.ensure_object(dict)
    ctx.obj['url'] = url
    ctx.obj['password'] = password
    ctx.obj['json'] = output_json


def _json_output(data: Dict[str, Any]) -> None:
    """Output data as JSON."""
    print(json.dumps(data, indent=None))


def _human_output(message: str) -> None:
    """Output human-readable message."""
    if not click.get_current_context().obj.get('json', False):
        click.echo(message)


def _fail(message: str) -> None:
    if click.get_current_context().obj.get('json', False):
        _json_output({'error': message})
    else:
        click.echo(f"❌ {message}", err=True)
    sys.exit(1)


def _connect(ctx) -> CaproverClient:
    config = ClientConfig.from_env(ctx.obj.get('url'), ctx.obj.get('password'))
    client = CaproverClient(config)
    executor_from_config(config).run(client.connect)
    return client


def _parse_variables(pairs: Tuple[str, ...]) -> Dict[str, str]:
    variables = {}
    for pair in pairs:
        if '=' not in pair:
            raise click.BadParameter(f"Invalid variable format: {pair} (expected id=value)")
        key, value = pair.split('=', 1)
        if not key:
            raise click.BadParameter(f"Variable id must not be empty: {pair}")
        variables[variable_token(key)] = value
    return variables


@main.command()
@click.pass_context
def apps(ctx):
    """List app names."""
    try:
        client = _connect(ctx)
        names = [app['appName'] for app in executor_from_config(client.config).run(client.list_apps)]
        if ctx.obj['json']:
            _json_output({'apps': names})
        else:
            for name in names:
                click.echo(name)
    except (CaproverError, ValueError) as e:
        _fail(f"Listing apps failed: {e}")


@main.command()
@click.argument('app_name')
@click.option('--persistent', is_flag=True, help='App keeps persistent data')
@click.pass_context
def create(ctx, app_name, persistent):
    """Register a new app."""
    try:
        client = _connect(ctx)
        executor_from_config(client.config).run(client.register_app, app_name, persistent)
        _human_output(f"✅ Created {app_name}")
    except (CaproverError, ValueError) as e:
        _fail(f"Create failed: {e}")


@main.command()
@click.argument('app_name')
@click.option('--volumes', 'delete_volumes', is_flag=True, help='Delete the app volumes as well')
@click.option('--yes', is_flag=True, help='Skip confirmation prompt')
@click.pass_context
def delete(ctx, app_name, delete_volumes, yes):
    """Delete an app."""
    if not yes and not click.confirm(f"Are you sure you want to delete {app_name}?"):
        _human_output("Deletion cancelled")
        return
    try:
        client = _connect(ctx)
        executor_from_config(client.config).run(client.delete_app, app_name, delete_volumes)
        _human_output(f"🗑️  Deleted {app_name}")
    except (CaproverError, ValueError) as e:
        _fail(f"Delete failed: {e}")


@main.command()
@click.argument('app_name')
@click.option('--image', help='Image reference, e.g. nginx:latest')
@click.option('--dockerfile-line', 'dockerfile_lines', multiple=True, help='Dockerfile line (repeatable)')
@click.option('--no-wait', is_flag=True, help='Return without waiting for the build')
@click.pass_context
def deploy(ctx, app_name, image, dockerfile_lines, no_wait):
    """Deploy an image or dockerfile lines to an existing app."""
    if not image and not dockerfile_lines:
        raise click.UsageError("Provide --image or at least one --dockerfile-line")
    try:
        client = _connect(ctx)
        executor_from_config(client.config).run(
            client.deploy_app, app_name, image_name=image, dockerfile_lines=list(dockerfile_lines)
        )
        if not no_wait:
            waiter_for(client).wait_or_raise(app_name)
        _human_output(f"🚀 Deployed {app_name}")
    except (CaproverError, ValueError) as e:
        _fail(f"Deploy failed: {e}")


@main.command('add-domain')
@click.argument('app_name')
@click.argument('domain')
@click.pass_context
def add_domain(ctx, app_name, domain):
    """Attach a custom domain to an app."""
    try:
        client = _connect(ctx)
        executor_from_config(client.config).run(client.add_domain, app_name, domain)
        _human_output(f"✅ {domain} added to {app_name}")
    except (CaproverError, ValueError) as e:
        _fail(f"Adding domain failed: {e}")


@main.command('enable-ssl')
@click.argument('app_name')
@click.option('--domain', help='Custom domain; default is the CapRover subdomain')
@click.pass_context
def enable_ssl(ctx, app_name, domain):
    """Enable HTTPS for an app."""
    try:
        client = _connect(ctx)
        executor_from_config(client.config).run(client.enable_ssl, app_name, domain)
        _human_output(f"🔒 SSL enabled for {domain or app_name}")
    except (CaproverError, ValueError) as e:
        _fail(f"Enabling SSL failed: {e}")


@main.command('one-click')
@click.argument('manifest')
@click.argument('app_name')
@click.option('--var', 'variables', multiple=True, help='Variable id=value (repeatable)')
@click.option('--repository', help='One-click repository URL prefix or local directory')
@click.pass_context
def one_click(ctx, manifest, app_name, variables, repository):
    """Deploy a one-click app bundle."""
    values = _parse_variables(variables)
    try:
        client = _connect(ctx)
        repo = ManifestRepository(
            repository or client.config.one_click_repository,
            timeout=client.config.request_timeout,
        )
        report = BundleOrchestrator(client, repository=repo).deploy(manifest, app_name, values)
        if ctx.obj['json']:
            _json_output({
                'manifest': report.manifest,
                'app_name': report.app_name,
                'deployed': report.deployed,
                'display_name': report.display_name,
                'instructions': report.instructions,
            })
        else:
            _human_output(f"🚀 Deployed {', '.join(report.deployed)}")
            if report.instructions:
                _human_output(report.instructions)
    except (CaproverError, ValueError) as e:
        _fail(f"One-click deployment failed: {e}")


@main.command()
@click.option('--file-name', help='Archive name on the server')
@click.pass_context
def backup(ctx, file_name):
    """Create a server backup and print its download token."""
    try:
        client = _connect(ctx)
        token = executor_from_config(client.config).run(client.create_backup, file_name)
        if ctx.obj['json']:
            _json_output({'download_token': token})
        else:
            click.echo(token)
    except (CaproverError, ValueError) as e:
        _fail(f"Backup failed: {e}")


if __name__ == '__main__':
    main()
