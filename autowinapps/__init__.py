"""AutoWinApps installer (Python-first, context-driven).

Core design goals:
- One explicit, immutable install context instead of globals
- One OS module per supported distribution
- Ordered package fallback strategies
- Resumable via a small checkpoint file
- Centralized logging
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
