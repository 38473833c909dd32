"""Step definitions and the ordered step catalog."""

from dataclasses import dataclass
from typing import Callable, Optional, Protocol, runtime_checkable

from common import StepOutcome
from config import DriverConfig
from environments import EnvironmentRecord

# Capabilities
PREREQUISITE = 'prerequisite'
INSTALL = 'install'
CREDENTIAL = 'credential'
SECRET = 'secret'
DEPLOY = 'deploy'
ACCESS = 'access'
STATUS = 'status'

ConfirmFn = Callable[[str], bool]


@dataclass(frozen=True)
class Precondition:
    """Ready, or Blocked with a reason and the error kind behind it."""
    ready: bool
    reason: str = ''
    kind: str = ''

    @classmethod
    def ok(cls) -> 'Precondition':
        return cls(ready=True)

    @classmethod
    def blocked(cls, reason: str, kind: str = 'PrerequisiteMissing') -> 'Precondition':
        return cls(ready=False, reason=reason, kind=kind)


@runtime_checkable
class Step(Protocol):
    """Protocol for catalog steps.

    Class attributes:
        id: Step identifier (e.g., 'install-control-plane')
        ordinal: Position in the catalog and menu number
        capability: One of the capability constants above
        description: Menu text
        scoped: If True, execute() takes an EnvironmentRecord (or None for
            the single-environment path)
    """
    id: str
    ordinal: int
    capability: str
    description: str
    scoped: bool

    def check_precondition(self) -> Precondition:
        ...

    def execute(self, env: Optional[EnvironmentRecord] = None) -> StepOutcome:
        ...


def never_confirm(_prompt: str) -> bool:
    """Confirmation callback used when no operator is attached."""
    return False


# Registry of step classes, keyed by id
_steps: dict[str, type] = {}


def register_step(cls: type) -> type:
    """Decorator to register a step class."""
    for other in _steps.values():
        if other.ordinal == cls.ordinal and other.id != cls.id:
            raise ValueError(f"Step {cls.id} reuses ordinal {cls.ordinal} of {other.id}")
    _steps[cls.id] = cls
    return cls


def list_steps() -> list[type]:
    """Registered step classes in ordinal order."""
    return sorted(_steps.values(), key=lambda cls: cls.ordinal)


def build_catalog(config: DriverConfig, confirm: ConfirmFn = never_confirm) -> list[Step]:
    """Instantiate every registered step, ordered by ordinal."""
    return [cls(config=config, confirm=confirm) for cls in list_steps()]


# Import steps to trigger registration
from steps import prerequisites  # noqa: E402, F401
from steps import control_plane  # noqa: E402, F401
from steps import secrets  # noqa: E402, F401
from steps import workload  # noqa: E402, F401
