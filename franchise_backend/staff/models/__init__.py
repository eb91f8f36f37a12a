"""
PATH: staff/models/__init__.py
"""

from .attendance import AttendanceLog
from .employee import Employee

__all__ = [
    "AttendanceLog",
    "Employee",
]
