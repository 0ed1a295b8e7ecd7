"""Custom exception hierarchy for procdiag."""


class ProcdiagError(Exception):
    """Base for all procdiag errors."""


class CatalogUnavailableError(ProcdiagError):
    """The OS process table could not be enumerated at all."""


class InvalidSelection(ProcdiagError):
    """Operator input did not name a listed entry."""


class DuplicateActionError(ProcdiagError):
    """An action with this name is already registered for the category."""


class DispatchStateError(ProcdiagError):
    """Invalid dispatch state transition."""


class DispatchError(ProcdiagError):
    """A diagnostic action could not be carried out."""


class ProcessGoneError(DispatchError):
    """The target process exited between scan and dispatch."""

    def __init__(self, pid: int):
        super().__init__(f"Process {pid} no longer exists")
        self.pid = pid


class SpawnFailedError(DispatchError):
    """The diagnostic binary could not be started (or the source read)."""

    def __init__(self, message: str, hint: str = ""):
        super().__init__(message)
        self.hint = hint


class DispatchTimeoutError(DispatchError):
    """The diagnostic command exceeded its time bound and was killed."""

    def __init__(self, action: str, timeout: float):
        super().__init__(f"{action} timed out after {timeout:g}s")
        self.action = action
        self.timeout = timeout
