"""Staff attendance package.

Organized by feature modules (sites, attendance, autoclose, payroll, ...)
with a thin Flask controller layer over service/repository layers.
"""

__version__ = "0.1.0"
