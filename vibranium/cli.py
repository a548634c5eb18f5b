import click

from vibranium.exceptions import DeploymentError
from vibranium.manifest import DeployedContracts
from vibranium.options import project_path_option, tracking_option
from vibranium.project import Project


def _echo_deployed_contracts(deployed_contracts: DeployedContracts) -> None:
    if not deployed_contracts:
        click.echo("Nothing deployed.")
        return

    for contract in deployed_contracts.values():
        status = "skipped" if contract.skipped else "deployed"
        click.echo(f"{contract.name}\t{contract.address}\t{status}\t{contract.artifact_path}")


@click.group()
def cli():
    """Deploy the Smart Contracts of a DApp project."""


@cli.command()
@project_path_option
@tracking_option
def deploy(project_path, tracking_enabled):
    """Deploy the project's Smart Contracts in dependency order."""
    project = Project(project_path)
    try:
        deployed_contracts = project.deploy(tracking_enabled=tracking_enabled)
    except DeploymentError as err:
        raise click.ClickException(str(err))
    _echo_deployed_contracts(deployed_contracts)


@cli.command()
@project_path_option
def tracked(project_path):
    """List the tracked deployments on the connected chain."""
    project = Project(project_path)
    try:
        entries = project.tracked_deployments()
    except DeploymentError as err:
        raise click.ClickException(str(err))

    if not entries:
        click.echo("No tracked deployments.")
        return
    for entry in entries:
        click.echo(f"{entry.name}\t{entry.address}")


if __name__ == "__main__":
    cli()
