"""ripple - git-flow branching and version bumping from the command line."""

__version__ = "0.3.0"
