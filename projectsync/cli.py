import sys

import click
import yaml

from . import __version__
from .config import CtpProjectConfig
from .sync.client import CtpClient, Clock
from .sync.config import ProjectSyncConfig
from .sync.error_tracker import RETRYABLE_ERRORS, ErrorTracker, InvalidSelectorError, SyncException
from .sync.logging_manager import LoggingManager, get_logger
from .sync.orchestrator import SyncOrchestrator, run_sync
from .sync.registry import SYNC_MODULE_OPTION_DESCRIPTION

logger = get_logger(__name__)


def client_supplier(role: str, config: ProjectSyncConfig):
    """Zero-argument callable building the client of the 'source' or 'target' project."""
    def supply() -> CtpClient:
        project_config = CtpProjectConfig.from_environment(role)
        project_config.timeout = config.timeout_seconds
        return CtpClient(project_config, retry_policy=config.retry_policy(RETRYABLE_ERRORS))
    return supply


def build_orchestrator(config: ProjectSyncConfig, error_tracker: ErrorTracker) -> SyncOrchestrator:
    return SyncOrchestrator.of(
        client_supplier('source', config),
        client_supplier('target', config),
        Clock(),
        error_tracker=error_tracker,
        page_size=config.page_size,
        full_sync=config.full_sync,
        runner_name=config.runner_name,
    )


@click.group()
@click.version_option(__version__, '-v', '--version', prog_name='projectsync')
def cli():
    """Replicate commercetools master data from a source project to a target project."""
    pass

# Sync command: one resource kind ('products', 'categories', ...) or 'all'
@cli.command(name='sync')
@click.option('-s', '--sync', 'selector', type=click.STRING, default=None, help=SYNC_MODULE_OPTION_DESCRIPTION)
@click.option('-f', '--full', is_flag=True, default=False, help='Ignore last sync timestamps and sync all resources')
@click.option('-r', '--runner-name', type=click.STRING, default=None, help='Name of this runner, separates last sync timestamps')
@click.option('-c', '--config', 'config_path', type=click.Path(exists=True, dir_okay=False), default=None,
              help='YAML file with sync settings')
def sync(selector, full, runner_name, config_path):
    """Sync the selected resources from the source to the target project."""
    try:
        config = ProjectSyncConfig.from_yaml(config_path) if config_path else ProjectSyncConfig()
    except (SyncException, ValueError, yaml.YAMLError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    if full:
        config.full_sync = True
    if runner_name:
        config.runner_name = runner_name.strip() or config.runner_name

    LoggingManager.reset()
    LoggingManager(log_level=config.log_level, log_file=config.log_file)
    error_tracker = ErrorTracker()
    orchestrator = build_orchestrator(config, error_tracker)

    try:
        run_sync(orchestrator, selector)
    except InvalidSelectorError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Sync failed: {e}", extra={'details': error_tracker.generate_report()})
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def main():
    cli()

if __name__ == '__main__':
    main()
