from pathlib import Path
from typing import List, Optional, Union

from vibranium.config import Config
from vibranium.connector import BlockchainConnector, ConnectorError
from vibranium.deployer import Deployer
from vibranium.exceptions import DeploymentConnectionError, TrackingError
from vibranium.manifest import DeployedContracts
from vibranium.tracker import DeploymentTracker, TrackingEntry


class Project:
    """A DApp project on disk: its configuration, deployment tracker and node connection."""

    def __init__(self, path: Union[Path, str], connector: Optional[BlockchainConnector] = None):
        self.config = Config(path)
        self.tracker = DeploymentTracker(self.config)
        self._connector = connector

    @property
    def connector(self) -> BlockchainConnector:
        if self._connector is None:
            try:
                self._connector = BlockchainConnector.from_config(self.config.read().connector)
            except ConnectorError as err:
                raise DeploymentConnectionError(str(err)) from err
        return self._connector

    def deploy(self, tracking_enabled: Optional[bool] = None) -> DeployedContracts:
        deployer = Deployer(config=self.config, connector=self.connector, tracker=self.tracker)
        return deployer.deploy(tracking_enabled=tracking_enabled)

    def tracked_deployments(self) -> List[TrackingEntry]:
        """Returns the deployments tracked for the currently connected chain."""
        try:
            genesis_block = self.connector.genesis_block()
        except ConnectorError as err:
            raise DeploymentConnectionError(str(err)) from err
        if genesis_block is None:
            raise TrackingError("Couldn't find the genesis block of the connected chain.")
        return self.tracker.tracked_deployments(genesis_block["hash"])
