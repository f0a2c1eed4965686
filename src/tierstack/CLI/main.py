"""
Command Line Interface for TierStack.
"""
import click
import os
from ..PARSERS.assembly_parser import AssemblyParser
from ..STACKS.assemblies import ASSEMBLIES, DEFAULT_ASSEMBLY, build_assembly
from ..CONVERTERS.to_manifest import ManifestConverter
from ..MODELS.errors import TierstackError

@click.group()
@click.option('--file', '-f', default='tierstack.yml', help='Assembly file path')
@click.pass_context
def cli(ctx, file):
    """
    TierStack - layered network stacks.

    Composes base and application stacks and realizes their resources in
    dependency order.
    """
    ctx.ensure_object(dict)
    ctx.obj['file'] = file

def _fail(ctx, error):
    """Reports an error on stderr and exits non-zero."""
    click.echo(f"Error: {type(error).__name__}: {error}", err=True)
    ctx.exit(1)

def _build(ctx, assembly):
    """
    Parses the assembly file and builds the composition root.
    """
    path = ctx.obj['file']
    if not os.path.exists(path):
        click.echo(f"Error: {path} not found.", err=True)
        ctx.exit(1)
    config = AssemblyParser().parse(path)
    name = assembly or config.assembly or DEFAULT_ASSEMBLY
    return build_assembly(name, config)

@cli.command()
@click.argument('assembly', required=False)
@click.option('--out', '-o', default=None, help='Write stack manifests to this directory')
@click.pass_context
def synth(ctx, assembly, out):
    """Realize every stack of an assembly in order."""
    try:
        root = _build(ctx, assembly)
        outputs = root.synth()
        if out:
            ManifestConverter(root).convert(out)
    except TierstackError as e:
        _fail(ctx, e)
        return

    click.echo(f"Realized {len(root.realization_order())} resources.")
    for stack_name, values in outputs.items():
        for key, value in values.items():
            click.echo(f"{stack_name}.{key} = {value}")

@cli.command()
@click.argument('assembly', required=False)
@click.option('--out', '-o', default=None, help='Write stack manifests to this directory')
@click.pass_context
def plan(ctx, assembly, out):
    """Show the realization order without provisioning anything."""
    try:
        root = _build(ctx, assembly)
        plans = root.plan()
        if out:
            ManifestConverter(root).convert(out)
    except TierstackError as e:
        _fail(ctx, e)
        return

    click.echo(f"{'STACK':35} {'RESOURCE':45} {'TYPE':30}")
    click.echo("-" * 110)
    for stack, order in plans:
        for node in order:
            click.echo(f"{stack.name:35} {node.name:45} {node.resource_type:30}")

@cli.command()
@click.argument('assembly', required=False)
@click.pass_context
def destroy(ctx, assembly):
    """Realize an assembly, then tear it down in reverse order."""
    try:
        root = _build(ctx, assembly)
        root.synth()
        count = len(root.realization_order())
        root.destroy()
    except TierstackError as e:
        _fail(ctx, e)
        return
    click.echo(f"Destroyed {count} resources.")

@cli.command()
def assemblies():
    """List available assemblies"""
    for name, func in sorted(ASSEMBLIES.items()):
        summary = (func.__doc__ or "").strip().splitlines()
        click.echo(f"{name:15} {summary[0] if summary else ''}")

def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})

if __name__ == '__main__':
    main()
