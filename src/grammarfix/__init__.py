"""grammarfix - check text with LanguageTool and apply suggested corrections."""

from .controller import ReconciliationController
from .patch import apply_many, apply_one

__all__ = ["ReconciliationController", "apply_many", "apply_one"]
