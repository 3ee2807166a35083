"""DevOps Analytics - Azure DevOps activity exported as flat CSV reports."""

from ._version import __version__

__all__ = ["__version__"]
