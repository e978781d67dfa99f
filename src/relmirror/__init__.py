"""relmirror - mirror GitHub releases to a Gitee repository."""

__version__ = "0.3.0"
