"""
User roles enumeration.

Defines the role types for the hospital back-office.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        MD: Managing director, approves finance decisions
        ADMIN: Supreme user with system-level access
        SALES_HEAD / TEAM_LEAD / BD: Sales pipeline hierarchy
        INSURANCE_HEAD / PL_HEAD / OUTSTANDING_HEAD: Case desks
        HR_HEAD: People operations
        FINANCE_HEAD: Books ledger entries and maintains finance masters
        USER: Default role with no finance access
    """
    MD = "MD"
    ADMIN = "ADMIN"
    SALES_HEAD = "SALES_HEAD"
    TEAM_LEAD = "TEAM_LEAD"
    BD = "BD"
    INSURANCE_HEAD = "INSURANCE_HEAD"
    PL_HEAD = "PL_HEAD"
    HR_HEAD = "HR_HEAD"
    FINANCE_HEAD = "FINANCE_HEAD"
    OUTSTANDING_HEAD = "OUTSTANDING_HEAD"
    USER = "USER"
