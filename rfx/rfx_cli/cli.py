import click
from .pipeline import pipeline


@click.group()
def cli():
    """Random forest interpretation CLI."""
    pass


cli.add_command(pipeline, name="run-pipeline")
