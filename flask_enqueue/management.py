"""
Management commands for inspecting registered assets
"""
import click
from flask import current_app
from flask.cli import AppGroup

from .dependencies import FOOTER_GROUP
from .pipeline import current_pipeline
from .sources import probe_source

enqueue_cli = AppGroup('enqueue', help='Inspect scripts and styles declared through the asset pipeline.')


@enqueue_cli.command('probe')
@click.argument('src')
def probe_command(src):
    """Check that SRC exists and show the version latest_version() would use"""
    probe = probe_source(src)
    if not probe.exists:
        click.echo(f"❌ {src} not found (HTTP 200 expected)")
        raise SystemExit(1)

    click.echo(f"✅ {src} exists")
    if probe.last_modified is None:
        click.echo("   No last-modified information; version left unchanged")
    else:
        click.echo(f"   Version: {probe.last_modified}")


@enqueue_cli.command('list')
@click.option('--path', default='/', show_default=True, help='Request path to simulate')
def list_command(path):
    """List every script and style registered during a request"""
    with current_app.test_request_context(path):
        pipeline = current_pipeline()
        pipeline.run_enqueue_callbacks()

        for label, registry in (('Styles', pipeline.styles), ('Scripts', pipeline.scripts)):
            click.echo(f"=== {label} ===")
            if not registry.registered:
                click.echo("  (none)")
                continue
            for handle, dependency in registry.registered.items():
                queued = 'enqueued' if registry.query(handle, 'enqueued') else 'registered'
                placement = ''
                if registry.kind == 'script':
                    placement = ' footer' if dependency.group == FOOTER_GROUP else ' header'
                deps = ', '.join(dependency.deps) or '-'
                click.echo(
                    f"  {handle} [{queued}{placement}] src={dependency.src or '(inline)'} "
                    f"ver={dependency.ver if dependency.ver is not None else '-'} deps={deps}"
                )


@enqueue_cli.command('render')
@click.option('--part', type=click.Choice(['head', 'footer', 'all']), default='all', show_default=True)
@click.option('--path', default='/', show_default=True, help='Request path to simulate')
def render_command(part, path):
    """Print the tags the pipeline would output"""
    with current_app.test_request_context(path):
        pipeline = current_pipeline()
        if part in ('head', 'all'):
            click.echo(pipeline.render_head())
        if part in ('footer', 'all'):
            click.echo(pipeline.render_footer())


def register_commands(app):
    """Register CLI commands"""
    app.cli.add_command(enqueue_cli)
