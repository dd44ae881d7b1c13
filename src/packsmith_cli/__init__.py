"""packsmith-cli: command line interface for packsmith.

Commands:
- watch: build into the installed game and keep it in sync
- package: build into the local dist/ staging directory
- outdir: print the installed pack directories
- scaffold: create a new add-on project
"""

from __future__ import annotations

from packsmith import __version__

__all__ = ["__version__"]
