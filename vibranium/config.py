import typing
from pathlib import Path
from typing import Optional, Union

import yaml

from vibranium.constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_PROTOCOL,
    PROJECT_CONFIG_FILENAME,
    PROJECT_METADATA_DIRNAME,
)
from vibranium.exceptions import ConfigError
from vibranium.manifest import DeploymentManifest, keep_verbatim_values, parse_manifest
from vibranium.utils import _load_yaml, _load_yaml_verbatim


class ConnectorConfig(typing.NamedTuple):
    protocol: str = DEFAULT_PROTOCOL
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


class ProjectConfig(typing.NamedTuple):
    artifacts_path: Path
    deployment: Optional[DeploymentManifest]
    connector: Optional[ConnectorConfig]


def _parse_connector_config(blockchain_config: Optional[dict]) -> Optional[ConnectorConfig]:
    if not blockchain_config:
        return None
    if not isinstance(blockchain_config, dict):
        raise ConfigError("Malformed 'blockchain' configuration.")

    connector_config = blockchain_config.get("connector")
    if connector_config is None:
        return None
    if not isinstance(connector_config, dict):
        raise ConfigError("Malformed 'blockchain.connector' configuration.")

    port = connector_config.get("port", DEFAULT_PORT)
    try:
        port = int(port)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid connector port {port!r}")

    return ConnectorConfig(
        protocol=str(connector_config.get("protocol", DEFAULT_PROTOCOL)),
        host=str(connector_config.get("host", DEFAULT_HOST)),
        port=port,
    )


class Config:
    """
    Project configuration, read from the project's vibranium.yaml.
    Nothing is cached; every read() loads the file again.
    """

    def __init__(self, project_path: Union[Path, str]):
        self.project_path = Path(project_path).absolute()
        self.config_file = self.project_path / PROJECT_CONFIG_FILENAME

    @property
    def metadata_dir(self) -> Path:
        return self.project_path / PROJECT_METADATA_DIRNAME

    def exists(self) -> bool:
        return self.config_file.exists()

    def read(self) -> ProjectConfig:
        try:
            raw_config = _load_yaml(self.config_file)
            verbatim_config = _load_yaml_verbatim(self.config_file)
        except FileNotFoundError as err:
            raise ConfigError(f"Couldn't find project configuration at {self.config_file}") from err
        except yaml.YAMLError as err:
            raise ConfigError(f"Couldn't parse project configuration: {err}") from err

        if not isinstance(raw_config, dict):
            raise ConfigError(f"Malformed project configuration at {self.config_file}")

        sources = raw_config.get("sources")
        if not isinstance(sources, dict) or not sources.get("artifacts"):
            raise ConfigError("Project configuration is missing 'sources.artifacts'.")

        raw_deployment = raw_config.get("deployment")
        deployment = None
        if raw_deployment is not None:
            verbatim_deployment = verbatim_config.get("deployment")
            deployment = parse_manifest(keep_verbatim_values(raw_deployment, verbatim_deployment))

        return ProjectConfig(
            artifacts_path=self.project_path / sources["artifacts"],
            deployment=deployment,
            connector=_parse_connector_config(raw_config.get("blockchain")),
        )

    def resolve_path(self, path: Union[Path, str]) -> Path:
        """Resolves a path of the project configuration against the project root."""
        path = Path(path)
        if path.is_absolute():
            return path
        return self.project_path / path
