"""
GradlePatch (idempotent Gradle template patcher)

This package contains:
- Core utilities (gradlepatch.core)
- Marker-bounded patcher (gradlepatch.patching)
- Fragment-set file validation (gradlepatch.validation)
- Editor-style hooks (gradlepatch.integration)
- GUI panel (gradlepatch.gui)
"""

from __future__ import annotations

APP_NAME: str = "GradlePatch"
APP_ID: str = "gradlepatch"
__version__: str = "0.1.0"
