"""Exception types raised by Range AI."""


class RangeAIError(Exception):
    """Base class for Range AI errors."""


class StateSizeMismatchError(RangeAIError, ValueError):
    """A state vector does not match the owning role's configured size."""


class ModelLoadError(RangeAIError):
    """A saved model file is missing, unreadable or incompatible."""


class UnknownRoleError(RangeAIError, KeyError):
    """A role name is not registered."""
