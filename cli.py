#!/usr/bin/env python3
"""
CLI for the Deliverable Tracker.

Usage:
    python cli.py init-db
    python cli.py seed-gates
    python cli.py next-number variation --project 5f0c...
    python cli.py serve --port 8000

Commands:
    init-db       Create database tables
    seed-gates    Load deliverable gates from configuration
    next-number   Suggest the next project, variation or area number
    serve         Start the API server
"""
import logging

import click

from deliverable_tracker.config import ConfigurationError, get_config

_config = get_config()
logging.basicConfig(level=_config.log_level, format=_config.log_format)
logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version=_config.version)
def cli():
    """Deliverable Tracker CLI.

    Manage the deliverable database and numbering from the command line.
    """
    pass


@cli.command('init-db')
def init_db_command():
    """Create all database tables."""
    from deliverable_tracker.models import init_db

    init_db()
    click.echo(click.style(f"Database initialized at {_config.database_url}", fg='green'))


@cli.command('seed-gates')
def seed_gates():
    """Insert or update deliverable gates from the configuration file."""
    from deliverable_tracker.models import SessionLocal, init_db
    from deliverable_tracker.infrastructure.repositories import DeliverableGateRepository

    init_db()
    db = SessionLocal()
    try:
        repo = DeliverableGateRepository(db)
        count = repo.seed(_config.gates)
        repo.commit()
    except Exception:
        db.rollback()
        logger.exception("Seeding deliverable gates failed")
        raise
    finally:
        db.close()

    click.echo(click.style(f"Seeded {count} deliverable gates", fg='green'))


@cli.command('next-number')
@click.argument('scheme', type=click.Choice(['project', 'variation', 'area']))
@click.option('--project', 'project_guid', default=None, help='Project GUID scoping variation and area numbers')
def next_number(scheme: str, project_guid: str):
    """Suggest the next number for SCHEME.

    Example:
        python cli.py next-number area --project 5f0c1d2e-...
    """
    from deliverable_tracker.models import SessionLocal
    from deliverable_tracker.infrastructure.repositories import (
        AreaRepository,
        ProjectRepository,
        VariationRepository,
    )
    from deliverable_tracker.domain.services import AutoIncrementAllocator

    repositories = {
        'project': ProjectRepository,
        'variation': VariationRepository,
        'area': AreaRepository,
    }

    db = SessionLocal()
    try:
        allocator = AutoIncrementAllocator.for_scheme(
            repositories[scheme](db), scheme, _config, scope_value=project_guid
        )
        value = allocator.refresh()
    except ConfigurationError as e:
        raise click.ClickException(str(e))
    finally:
        db.close()

    click.echo(value)


@cli.command()
@click.option('--port', type=int, default=8000, help='Server port')
@click.option('--host', default='0.0.0.0', help='Server host')
@click.option('--reload', is_flag=True, help='Enable auto-reload')
def serve(port: int, host: str, reload: bool):
    """Start the API server.

    Example:
        python cli.py serve --port 8000 --reload
    """
    import uvicorn

    click.echo(click.style('Deliverable Tracker - API Server', fg='cyan', bold=True))
    click.echo(f"Starting server at http://{host}:{port}")

    uvicorn.run(
        "deliverable_tracker.main:app",
        host=host,
        port=port,
        reload=reload
    )


if __name__ == '__main__':
    cli()
