"""Errors raised while deploying the contracts of a project."""


class DeploymentError(Exception):
    """Base class for deployment errors; raised directly for otherwise unclassified failures."""


class ConfigError(DeploymentError):
    """Raised when the project configuration can't be read."""


class ManifestError(DeploymentError, ValueError):
    """Raised when the deployment section of the project configuration is malformed."""


class MissingConfigError(DeploymentError):
    def __init__(self):
        super().__init__("Missing deployment configuration.")


class CyclicDependencyError(DeploymentError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"Couldn't deploy Smart Contracts due to a cyclic dependency in '{name}'"
        )


class MissingReferenceError(DeploymentError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Couldn't find Smart Contract configuration for reference '{name}'")


class MissingArtifactError(DeploymentError):
    def __init__(self, kind: str, path: str):
        self.kind = kind
        self.path = path
        super().__init__(f"Couldn't find {kind} file for artifact '{path}'")


class MissingABIPathError(DeploymentError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Missing `abi_path` for Smart Contract configuration '{name}'")


class MissingBytecodePathError(DeploymentError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Missing `bytecode_path` for Smart Contract configuration '{name}'")


class InvalidAddressError(DeploymentError):
    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid address in Smart Contract configuration for '{name}': {reason}")


class InvalidParamTypeError(DeploymentError):
    def __init__(self, kind: str, reason: str):
        self.kind = kind
        self.reason = reason
        super().__init__(
            f"Couldn't read Smart Contract constructor parameter type '{kind}': {reason}"
        )


class TokenizeParamError(DeploymentError):
    def __init__(self, kind: str, value: str):
        self.kind = kind
        self.value = value
        super().__init__(
            f"Couldn't tokenize Smart Contract constructor parameter of type '{kind}' "
            f"with value {value!r}"
        )


class TooManyConstructorArgsError(DeploymentError):
    def __init__(self, name: str, limit: int):
        self.name = name
        self.limit = limit
        super().__init__(
            f"Couldn't deploy Smart Contract '{name}' due to too many constructor arguments "
            f"(max. {limit})"
        )


class InvalidConstructorArgsError(DeploymentError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"Couldn't deploy Smart Contract '{name}' due to mismatching types "
            "in constructor arguments."
        )


class DeployContractError(DeploymentError):
    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Couldn't deploy Smart Contract '{name}' due to {reason}")


class DeploymentConnectionError(DeploymentError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class TrackingError(DeploymentError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Couldn't track deployed Smart Contracts: {reason}")
