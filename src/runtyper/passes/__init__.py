"""
Pass infrastructure. Concrete passes are imported from their modules.
"""

from .base import BasePass, PassManager, RewriteContext

__all__ = ["BasePass", "PassManager", "RewriteContext"]
