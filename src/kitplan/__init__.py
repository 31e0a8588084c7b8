"""kitplan: shift-aware kitting job scheduler with what-if scenarios."""

__version__ = "0.1.0"
