import pytest
from click.testing import CliRunner

from tests.conftest import BYTECODE
from vibranium import cli as cli_module
from vibranium.cli import cli
from vibranium.exceptions import MissingConfigError
from vibranium.project import Project


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def patched_project(monkeypatch, connector):
    """Routes the CLI's projects through the in-memory node."""

    def project_factory(path):
        return Project(path, connector=connector)

    monkeypatch.setattr(cli_module, "Project", project_factory)


def test_deploy(runner, project_dir, make_artifact, make_config, patched_project):
    make_artifact("Token")
    make_config({"smart_contracts": [{"name": "Token"}]})

    result = runner.invoke(cli, ["deploy", "--path", str(project_dir)])
    assert result.exit_code == 0, result.output
    assert "Token\t0x0000000000000000000000000000000000000001\tdeployed" in result.output

    result = runner.invoke(cli, ["deploy", "--path", str(project_dir)])
    assert result.exit_code == 0, result.output
    assert "\tskipped\t" in result.output


def test_deploy_without_tracking(runner, project_dir, make_artifact, make_config, patched_project):
    make_artifact("Token")
    make_config({"smart_contracts": [{"name": "Token"}]})

    result = runner.invoke(cli, ["deploy", "-p", str(project_dir), "--no-tracking"])
    assert result.exit_code == 0, result.output
    assert "Tracking: False" in result.output
    assert not (project_dir / ".vibranium").exists()


def test_deploy_nothing(runner, project_dir, make_config, patched_project):
    make_config({"smart_contracts": []})
    result = runner.invoke(cli, ["deploy", "--path", str(project_dir)])
    assert result.exit_code == 0, result.output
    assert "Nothing deployed." in result.output


def test_deploy_error(runner, project_dir, make_config, patched_project):
    make_config()
    result = runner.invoke(cli, ["deploy", "--path", str(project_dir)])
    assert result.exit_code == 1
    assert str(MissingConfigError()) in result.output


def test_deploy_missing_project_dir(runner, tmp_path):
    result = runner.invoke(cli, ["deploy", "--path", str(tmp_path / "nope")])
    assert result.exit_code == 2


def test_tracked(runner, project_dir, make_artifact, make_config, patched_project):
    make_artifact("Token", bytecode=BYTECODE)
    make_config({"smart_contracts": [{"name": "Token"}]})

    result = runner.invoke(cli, ["tracked", "--path", str(project_dir)])
    assert result.exit_code == 0, result.output
    assert "No tracked deployments." in result.output

    runner.invoke(cli, ["deploy", "--path", str(project_dir)])
    result = runner.invoke(cli, ["tracked", "--path", str(project_dir)])
    assert result.exit_code == 0, result.output
    assert "Token\t0x0000000000000000000000000000000000000001" in result.output
