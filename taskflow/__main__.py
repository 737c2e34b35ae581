from taskflow.cli import cli

cli()
