"""release-package: clone a distribution repository, update it, commit, tag and push."""

__version__ = "0.3.0"
