# podunit/errors.py
"""Errors raised while generating a unit. All of them end the generation call."""


class UnitGenerationError(Exception):
    """Base class for failures of a single unit generation."""
    pass


class MissingPIDFileError(UnitGenerationError):
    pass


class MissingCreateCommandError(UnitGenerationError):
    pass


class MissingContainerNameError(UnitGenerationError):
    pass


class InvalidRestartPolicyError(UnitGenerationError):
    pass


class InvalidCreateCommandError(UnitGenerationError):
    """The recorded create command has no run/create subcommand or bad flags."""
    pass


class UnresolvedRuntimeRootError(UnitGenerationError):
    pass


class TemplateError(UnitGenerationError):
    """Rendering failed. Bad descriptor content is a programming error."""
    pass


class MetadataError(Exception):
    """Container metadata could not be read or validated."""
    pass
