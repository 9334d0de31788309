"""Exceptions that abort a report run."""


class DepscoutError(Exception):
    """Base class for fatal depscout errors."""


class ManifestError(DepscoutError):
    """A package.json could not be read or is not a JSON object."""


class SuggestionError(DepscoutError):
    """The upgrade suggestion source failed or returned an unusable shape."""
