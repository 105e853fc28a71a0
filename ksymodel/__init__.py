"""ksymodel - typed model of KaiTai binary format schemas."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("ksymodel")
except PackageNotFoundError:
    __version__ = "(local)"
