"""MyOS Ultimate image builder.

Core design goals:
- Ordered, idempotent stages
- Fail fast on mandatory stages
- External tools do the real work (dnf, debootstrap, make, grub-mkrescue)
- Centralized logging
"""

__all__ = []
