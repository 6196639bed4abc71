# src/gumboard/utils/__init__.py

from . import metrics  # noqa: F401
from .logging import configure_root, get_logger  # noqa: F401
