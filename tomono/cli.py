#!/usr/bin/env python3

import logging
import sys

import click

from . import __version__
from .config import load_config
from .exit_codes import (
    CommandError,
    INTERRUPTED,
    get_exit_code_for_exception,
)
from .render import render_summary_jsonl, render_summary_table
from .services import ConsolidationService, RepositoryRegistry, options_from_config


@click.command(name='create-mono')
@click.version_option(version=__version__)
@click.argument('target_url')
@click.argument('target_name')
@click.option('--subdir', metavar='DIR', help='Put every repository under DIR/<name>/')
@click.option('--continue', 'resume', is_flag=True,
              help='Resume from the already published monorepo')
@click.option('--sources', 'sources_file', type=click.File('r'), default='-',
              help='Source list (default: stdin)')
@click.option('--no-prune', is_flag=True, default=False,
              help='Keep source branches already merged into master')
@click.option('--exclude', multiple=True, metavar='TOKEN',
              help='Skip branches whose name contains TOKEN (repeatable)')
@click.option('--fetch-jobs', type=click.IntRange(min=1), default=1, show_default=True,
              help='Fetch this many repositories concurrently before merging')
@click.option('--no-push', is_flag=True, help='Do not push the result')
@click.option('--json', 'json_output', is_flag=True, help='Output summary as JSONL')
@click.option('-v', '--verbose', is_flag=True, help='Log every git command')
def create_mono(target_url, target_name, subdir, resume, sources_file, no_prune,
                exclude, fetch_jobs, no_push, json_output, verbose):
    """Merge several repositories into one monorepo, keeping their history.

    Reads "<url> <name>" pairs, one per line, from stdin. Every branch of
    every repository is merged into the eponymous branch of the monorepo
    at TARGET_URL, with all files (also in history) moved under <name>/.
    The monorepo is built in the directory TARGET_NAME.

    \b
    Examples:
        create-mono git@example.com:org/core.git core < repos.txt
        create-mono --subdir libs --continue URL core < repos.txt

    Set GIT_TMPDIR to choose where scratch data is written.
    """
    try:
        config = load_config()
        level = "DEBUG" if verbose else config.get("logging", {}).get("level", "INFO")
        logging.getLogger("tomono").setLevel(str(level).upper())

        registry = RepositoryRegistry.parse(sources_file.read())
        options = options_from_config(
            config,
            subdir=subdir,
            resume=resume,
            prune_merged=False if no_prune else None,
            exclude=list(exclude),
            fetch_jobs=fetch_jobs,
            push=not no_push,
        )

        service = ConsolidationService(config=config)
        for message in service.run(registry, target_url, target_name, options):
            click.echo(message, err=True)
        summary = service.last_result

        if json_output:
            for line in render_summary_jsonl(summary):
                click.echo(line)
        else:
            render_summary_table(summary)

    except KeyboardInterrupt:
        click.echo("Interrupted by user", err=True)
        sys.exit(INTERRUPTED)
    except CommandError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(e.exit_code)
    except OSError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(get_exit_code_for_exception(e))


def main():
    create_mono()


if __name__ == "__main__":
    main()
