"""Domain errors for DBUpgrader."""


class UpgraderError(RuntimeError):
    """Raised when the upgrade cannot continue safely."""


class VersionUnknownError(UpgraderError):
    """The on-disk version marker is missing or unreadable."""


class InvalidLedgerStateError(UpgraderError):
    """The persisted upgrade status is not a recognized value."""


class LedgerWriteError(UpgraderError):
    """The upgrade status could not be persisted."""


class ContainerIdentityError(UpgraderError):
    """The id of the running container could not be determined."""


class HostPathNotFoundError(UpgraderError):
    """No bind or mount maps the requested container path to the host."""


class UpgradeConfirmationRequiredError(UpgraderError):
    """An upgrade is pending but unattended upgrades are disabled."""


class UpgradeContainerFailedError(UpgraderError):
    """The helper container could not run or exited unsuccessfully."""

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


class FinalizationError(UpgraderError):
    """Swapping the data directories or optimizing the new cluster failed."""

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


class InterruptedUpgradeError(UpgraderError):
    """A previous upgrade attempt was interrupted and needs manual recovery."""

    def __init__(self, message: str, commands=None):
        super().__init__(message)
        self.commands = list(commands or [])
