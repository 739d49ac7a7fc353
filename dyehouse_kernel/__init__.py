"""
Dyehouse Kernel

Shared foundation for the dyehouse reconciliation engines:
- Immutable batch and transfer-event value objects
- Typed, coded exception hierarchy
- Structured JSON logging
"""

__version__ = "0.1.0"
