# compliance_app/models/enums.py
"""
Enums shared by the organisation and certification models.
"""

from enum import Enum as PyEnum


class EmployeeStatus(PyEnum):
    """Employment status"""

    ACTIVE = "active"
    INACTIVE = "inactive"


class CertificateStatus(PyEnum):
    """Lifecycle state of a certificate record, always derived from its dates"""

    REGISTERED = "registered"
    ACTIVE = "active"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"


class ComplianceStatus(PyEnum):
    """Coarse compliance classification used for aggregate reporting"""

    COMPLIANT = "compliant"
    EXPIRING_SOON = "expiring_soon"
    NON_COMPLIANT = "non_compliant"
    EXEMPT = "exempt"
    PENDING = "pending"
