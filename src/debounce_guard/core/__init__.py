"""Core guard logic for the debounce guard.

This package contains the framework-agnostic pieces that interception
layers build on:
- Orchestrator: normalize -> key -> acquire -> invoke -> release
- Decorators: call-site configuration for async endpoints
"""

from debounce_guard.core.decorators import debounce
from debounce_guard.core.orchestrator import GuardOrchestrator

__all__ = ["GuardOrchestrator", "debounce"]
