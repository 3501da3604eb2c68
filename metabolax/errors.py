"""Exceptions raised by the metabolic rate engine.

Configuration problems surface when objects are constructed, muscle lookup
problems when an engine is attached to a host, and misuse of an engine
that was never attached when it is first evaluated. Per-step evaluation
itself raises nothing.

:copyright: Copyright 2024 by MLL <mll@mll.bio>.
:license: Apache 2.0. See LICENSE for details.
"""


class MetabolicsError(Exception):
    """Base class for all errors raised by `metabolax`."""


class ConfigurationError(MetabolicsError, ValueError):
    """A parameter, flag or curve was given an invalid value."""


class AttachmentError(MetabolicsError):
    """The engine could not be attached to a host model."""


class UnknownMuscleError(AttachmentError, LookupError):
    """A parameter entry names a muscle that the host does not contain."""


class DuplicateMuscleError(AttachmentError, ValueError):
    """More than one parameter entry refers to the same host muscle."""


class NotReadyError(MetabolicsError, RuntimeError):
    """The engine was evaluated before being attached to a host."""
