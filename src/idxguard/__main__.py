from idxguard.cli import cli

cli()
