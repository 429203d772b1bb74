"""Exception hierarchy for specway.

Only violations of a call contract are raised.  Problems found in the
*content* of a document, request or response are reported as
:class:`~specway.models.Issue` values instead.

Subclass hierarchy::

    SpecwayError
    +-- SpecParseError            (document cannot be loaded or modelled)
    +-- InvalidArgumentError      (bad registry call, also a TypeError)
    +-- UnknownFormatError        (sample generation without a generator)
    +-- ReferenceResolutionError  (a single $ref cannot be resolved)
    +-- ConfigError               (invalid specway.json or environment)
    +-- BodyDecodeError           (message bytes cannot be decoded as text)
"""

from __future__ import annotations


class SpecwayError(Exception):
    """Base exception for all specway errors.

    Args:
        message: Human-readable error description.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SpecParseError(SpecwayError):
    """Raised when a document cannot be loaded, is not Swagger 2.0, or cannot be modelled."""


class InvalidArgumentError(SpecwayError, TypeError):
    """Raised when a registry method is called with a missing or wrongly typed argument."""


class UnknownFormatError(SpecwayError):
    """Raised when a sample is requested for a string format nobody can generate.

    Args:
        format_name: The unsupported ``format`` value.
    """

    def __init__(self, format_name: str):
        super().__init__(f'unknown registry key "{format_name}"')
        self.format_name = format_name


class ReferenceResolutionError(SpecwayError):
    """Raised inside the resolver when one ``$ref`` cannot be followed.

    The resolver records these in the reference inventory; they never
    escape :func:`specway.create`.
    """


class ConfigError(SpecwayError):
    """Raised for configuration problems (invalid JSON, values failing validation)."""


class BodyDecodeError(SpecwayError):
    """Raised when a byte body cannot be decoded with the message's encoding.

    Parameter extraction and response validation report it as an
    ``INVALID_BODY_ENCODING`` issue.
    """
