from vibranium.deployer import Deployer
from vibranium.exceptions import DeploymentError
from vibranium.manifest import DeployedContract
from vibranium.project import Project
