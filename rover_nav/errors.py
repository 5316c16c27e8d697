"""Error types raised by the navigation stack."""


class NavigationError(Exception):
    """Base class for navigation stack errors."""


class ConfigurationError(NavigationError):
    """A component was configured in a way it cannot operate with.

    Raised (or, for the localizer, recorded and logged) when fewer than three
    landmarks are configured or a required collaborator is missing. The
    affected component disables itself; the host keeps running.
    """
