"""
Co-working Kernel

Shared infrastructure for the co-working contract modules:
- Structured JSON logging
- Typed, coded exceptions
- Injectable clocks and workflow value objects
- SQLAlchemy base classes and engine/session management
"""

__version__ = "0.1.0"
