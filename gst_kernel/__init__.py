"""
GST Kernel - value objects, typed errors and structured logging.

Foundation for the GST tax and reconciliation engines:
- Decimal-only Money paired with its currency
- Explicit rounding (never implicit)
- Machine-readable error codes
- JSON structured logging with request-scoped context
"""

__version__ = "0.1.0"
