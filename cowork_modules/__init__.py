"""
Co-working Modules.

Thin domain layers over the Co-working Kernel.  Each module contains:
- Domain models (the nouns)
- Workflows (state machines)
- Pure calculations
- Configuration schemas
- ORM persistence and a service facade

Modules:
- Contracts: rent calculation, renewal workflow, invoice tagging, reminders
"""

from cowork_modules import contracts

__all__ = ["contracts"]
