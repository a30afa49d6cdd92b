"""Error taxonomy for intent resolution, dispatch and controller steps."""


class TreeBotError(Exception):
    """Base class for every error raised by the agent core."""


class ResolutionFailure(TreeBotError):
    """Model text could not be parsed into a call."""


class ValidationFailure(TreeBotError):
    """A parameter value does not fit its declared schema type."""

    def __init__(self, field: str, value, expected: str):
        super().__init__(f"Parameter '{field}' expected {expected}, got {value!r}")
        self.field = field
        self.value = value
        self.expected = expected


class TargetLost(TreeBotError):
    """The attacked entity is no longer in the world."""

    def __init__(self, target):
        super().__init__(f"Target {target!r} is no longer in the world")
        self.target = target


class ActionTimeout(TreeBotError):
    """A world action such as digging exceeded its time bound."""

    def __init__(self, action: str, timeout_s: float):
        super().__init__(f"{action} timed out after {timeout_s:.1f}s")
        self.action = action
        self.timeout_s = timeout_s


class ConfigurationError(TreeBotError):
    """A registered capability has no controller or service route."""


class UnexpectedFault(TreeBotError):
    """Wraps anything else raised inside a controller step."""

    def __init__(self, controller: str, cause: BaseException):
        super().__init__(f"{controller} failed: {cause}")
        self.controller = controller
        self.cause = cause
