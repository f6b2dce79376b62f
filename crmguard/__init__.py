"""
crmguard - authorization core for a multi-tenant CRM.

Decides, for a given actor (role + tenant + super-admin flag) and a given
target (owner tenant + role), whether an action is permitted.
"""

__version__ = "0.1.0"
