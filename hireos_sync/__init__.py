"""
hireos_sync - GoHighLevel integration layer for HireOS.

Links HireOS candidates to GoHighLevel contacts, manages the GoHighLevel
OAuth token lifecycle and triggers GoHighLevel workflows.
"""

__version__ = "0.1.0"
