"""Payroll receipt control: reconcile parsed receipts against the official payroll."""
from payroll_control.application.dto import ReconciliationFilters
from payroll_control.application.use_cases import ReconcilePayrollUseCase, ReconciliationContext
from payroll_control.domain.concepts import ConceptCode, ConceptRegistry
from payroll_control.domain.services import ReconciliationEngine, reconcile
from payroll_control.infrastructure.repositories.excel_repositories import (
    InMemoryOfficialRepository,
    SpreadsheetComputedRepository,
    SpreadsheetOfficialRepository,
)

__all__ = [
    "ReconcilePayrollUseCase",
    "ReconciliationContext",
    "ReconciliationFilters",
    "ReconciliationEngine",
    "reconcile",
    "ConceptCode",
    "ConceptRegistry",
    "SpreadsheetComputedRepository",
    "SpreadsheetOfficialRepository",
    "InMemoryOfficialRepository",
]
