"""Exception types raised by commitlens adapters.

The diff and interpretation engines never raise; these cover the edges that
talk to git, GitHub and model providers.
"""

from __future__ import annotations


class CommitLensError(Exception):
    """Base class for all commitlens specific errors."""


class GitError(CommitLensError):
    """Raised when a git command fails."""


class ProviderError(CommitLensError):
    """Raised when a model provider is misconfigured."""
