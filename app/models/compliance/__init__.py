from app.models.compliance.compliance_document import ComplianceDocument

__all__ = ["ComplianceDocument"]
