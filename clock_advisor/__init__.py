"""
Clock source advisor for Linux hosts and cloud VMs: spot slow timekeeping and print the fix.
"""

__all__ = ["advisor", "system_state", "remediation", "formatting", "cli"]
__version__ = "0.1.0"
