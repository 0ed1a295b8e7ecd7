"""procdiag — pick a process, run a diagnostic against it."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("procdiag")
except PackageNotFoundError:
    __version__ = "0.1.0"  # fallback for development
